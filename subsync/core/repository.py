"""Artifact repository — sole owner of the canonical ordered sequence.

The repository keeps the ordered list of artifacts in memory, persists every
mutation to a ``LocalArtifactStore`` before committing it, and mirrors the
enabled subset to a ``RemoteAdapter`` on request.

Design:
- One owner: every mutation runs under a re-entrant lock and is applied in
  admission order. Local mutations never wait on the network.
- Persist-then-commit: if the backing store rejects a write, the in-memory
  sequence is left exactly as it was.
- Snapshots only: artifacts are deep copied on the way in and on the way
  out, so nothing a caller does to a snapshot (tags and unknown extra fields
  included) can reach canonical state.
- The sync marker (digest of the enabled subset at the last upload or
  restore) is persisted with the collection, so unsynced state survives a
  restart.
- Last writer wins on upload; restore is an all-or-nothing overwrite.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from subsync.core.cancel import CancelToken
from subsync.core.codec import decode_payload, encode_payload, payload_extras
from subsync.core.errors import ArtifactValidationError, NotFoundError, OrderMismatchError
from subsync.core.events import EventChannel, EventKind
from subsync.core.hasher import blob_digest, content_digest
from subsync.core.local_store import LocalArtifactStore
from subsync.models.artifacts import Artifact, ArtifactType
from subsync.models.sync import SyncMarker, SyncOperation, SyncResult
from subsync.remote import RemoteAdapter

logger = logging.getLogger(__name__)


class ArtifactRepository:
    """Owns, persists and synchronizes the ordered artifact collection.

    Parameters
    ----------
    store:
        Local backing store read by ``fetch_all`` and written on every
        mutation.
    remote:
        Default remote adapter for ``sync_all_artifacts`` and
        ``restore_artifacts``.
    events:
        Channel that receives ``artifacts_changed`` notifications. A private
        channel is created when omitted.
    timeout:
        Default timeout in seconds for remote calls; ``None`` defers to the
        adapter's own default.
    """

    def __init__(
        self,
        store: LocalArtifactStore,
        remote: RemoteAdapter,
        *,
        events: EventChannel | None = None,
        timeout: float | None = None,
    ) -> None:
        self._store = store
        self._remote = remote
        self._events = events or EventChannel()
        self._timeout = timeout
        self._lock = threading.RLock()
        self._artifacts: list[Artifact] = []
        # Top-level payload fields this version does not own, kept for the
        # next write.
        self._extras: dict[str, Any] = {}
        self._marker: SyncMarker | None = None

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    @property
    def events(self) -> EventChannel:
        return self._events

    @property
    def remote(self) -> RemoteAdapter:
        return self._remote

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        """Hold the owner lock so a group of calls cannot be interleaved."""
        with self._lock:
            yield

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_all(self) -> list[Artifact]:
        """Return the canonical sequence. Never fails and never does I/O."""
        with self._lock:
            return _copies(self._artifacts)

    def get(self, artifact_id: str) -> Artifact:
        with self._lock:
            return self._artifacts[self._require_index(artifact_id)].model_copy(deep=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._artifacts)

    def enabled(self) -> list[Artifact]:
        """Return the enabled subset in canonical order."""
        with self._lock:
            return _copies(a for a in self._artifacts if a.is_enabled)

    def search(
        self, text: str = "", artifact_type: ArtifactType | None = None
    ) -> list[Artifact]:
        """Filter by type and by a case-insensitive text match.

        An empty *text* matches everything.
        """
        with self._lock:
            found = _copies(self._artifacts)
        if artifact_type is not None:
            found = [a for a in found if a.type == artifact_type]
        if text:
            found = [a for a in found if a.matches(text)]
        return found

    @property
    def last_synced_at(self) -> datetime | None:
        """When the last upload or restore finished, across restarts."""
        with self._lock:
            return self._marker.synced_at if self._marker else None

    @property
    def has_unsynced_changes(self) -> bool:
        """Whether the enabled subset differs from the last upload or restore."""
        with self._lock:
            if self._marker is None:
                return True
            return _digest_enabled(self._artifacts) != self._marker.digest

    # ------------------------------------------------------------------
    # Local persistence
    # ------------------------------------------------------------------

    def fetch_all(self) -> list[Artifact]:
        """Re-read the backing store and replace the cached sequence.

        Raises
        ------
        RemoteUnavailableError
            If the backing store cannot be read.
        DecodeError
            If its contents are malformed. The cache is left untouched.
        """
        with self._lock:
            snapshot = self._reload_locked()
        self._events.emit(EventKind.ARTIFACTS_CHANGED, "fetch", count=len(snapshot))
        return snapshot

    def _reload_locked(self) -> list[Artifact]:
        stored = self._store.load()
        self._artifacts = list(stored.artifacts)
        self._extras = dict(stored.extras)
        self._marker = stored.marker
        logger.debug("Loaded %d artifacts from %s", len(self._artifacts), self._store.path)
        return _copies(self._artifacts)

    def _commit(self, artifacts: list[Artifact], marker: SyncMarker | None = None) -> None:
        """Persist *artifacts*, then make them canonical. Caller holds the lock.

        A *marker* replaces the stored sync marker; otherwise it is kept.
        """
        marker = marker or self._marker
        self._store.save(artifacts, extras=self._extras, marker=marker)
        self._artifacts = artifacts
        self._marker = marker

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def save(self, artifact: Artifact) -> Artifact:
        """Insert or replace *artifact* by id.

        New ids are appended to the end of the order; existing ids are
        replaced in place and keep their original ``created_at``.

        Raises
        ------
        ArtifactValidationError
            If the name is empty.
        PersistenceError
            If the backing store write fails; nothing changes.
        """
        if not artifact.name.strip():
            raise ArtifactValidationError("Artifact name must not be empty")
        artifact = artifact.model_copy(deep=True)

        with self._lock:
            index = self._index_of(artifact.id)
            updated = list(self._artifacts)
            if index is None:
                saved = artifact.touched()
                updated.append(saved)
            else:
                saved = artifact.touched(created_at=self._artifacts[index].created_at)
                updated[index] = saved
            self._commit(updated)

        logger.info(
            "%s artifact %s (%s)",
            "Added" if index is None else "Updated",
            saved.id,
            saved.name,
        )
        self._events.emit(EventKind.ARTIFACTS_CHANGED, "save", artifact_id=saved.id)
        return saved.model_copy(deep=True)

    def create(self, name: str, artifact_type: ArtifactType | str, **fields: Any) -> Artifact:
        """Build a new artifact and append it."""
        try:
            artifact = Artifact(name=name, type=artifact_type, **fields)
        except ValidationError as exc:
            raise ArtifactValidationError(f"Invalid artifact: {exc}") from exc
        return self.save(artifact)

    def duplicate(self, artifact_id: str) -> Artifact:
        """Append a copy of *artifact_id* under a new id and derived name."""
        with self._lock:
            original = self._artifacts[self._require_index(artifact_id)]
            copy = original.duplicated()
            self._commit([*self._artifacts, copy])

        logger.info("Duplicated artifact %s as %s", artifact_id, copy.id)
        self._events.emit(
            EventKind.ARTIFACTS_CHANGED, "duplicate", artifact_id=copy.id, source_id=artifact_id
        )
        return copy.model_copy(deep=True)

    def delete(self, artifact_id: str) -> Artifact:
        """Remove *artifact_id* and return the removed artifact.

        Raises
        ------
        NotFoundError
            If the id is not in the collection.
        """
        with self._lock:
            index = self._require_index(artifact_id)
            removed = self._artifacts[index]
            self._commit(self._artifacts[:index] + self._artifacts[index + 1:])

        logger.info("Deleted artifact %s (%s)", removed.id, removed.name)
        self._events.emit(EventKind.ARTIFACTS_CHANGED, "delete", artifact_id=artifact_id)
        return removed.model_copy(deep=True)

    def delete_many(self, artifact_ids: Iterable[str]) -> list[Artifact]:
        """Remove several artifacts at once; any unknown id removes none."""
        targets = set(artifact_ids)
        with self._lock:
            for artifact_id in targets:
                self._require_index(artifact_id)
            removed = [a for a in self._artifacts if a.id in targets]
            self._commit([a for a in self._artifacts if a.id not in targets])

        logger.info("Batch deleted %d artifacts", len(removed))
        self._events.emit(
            EventKind.ARTIFACTS_CHANGED, "delete_many", artifact_ids=[a.id for a in removed]
        )
        return _copies(removed)

    def set_enabled(self, artifact_ids: Iterable[str], enabled: bool) -> list[Artifact]:
        """Enable or disable several artifacts; any unknown id changes none."""
        targets = set(artifact_ids)
        with self._lock:
            for artifact_id in targets:
                self._require_index(artifact_id)
            updated = [
                a.touched(is_enabled=enabled) if a.id in targets else a
                for a in self._artifacts
            ]
            self._commit(updated)
            changed = [a for a in updated if a.id in targets]

        logger.info(
            "Batch %s %d artifacts", "enabled" if enabled else "disabled", len(changed)
        )
        self._events.emit(
            EventKind.ARTIFACTS_CHANGED,
            "enable" if enabled else "disable",
            artifact_ids=[a.id for a in changed],
        )
        return _copies(changed)

    def reorder(self, new_id_order: Sequence[str]) -> list[Artifact]:
        """Replace the order with *new_id_order*.

        The new order must name every current id exactly once.

        Raises
        ------
        OrderMismatchError
            If *new_id_order* is not a permutation of the current ids. The
            previous order is kept unchanged.
        """
        new_ids = list(new_id_order)
        with self._lock:
            by_id = {a.id: a for a in self._artifacts}
            if len(new_ids) != len(by_id) or set(new_ids) != set(by_id):
                missing = sorted(set(by_id) - set(new_ids))
                foreign = sorted(set(new_ids) - set(by_id))
                raise OrderMismatchError(
                    f"Reorder must be a permutation of {len(by_id)} ids "
                    f"(got {len(new_ids)}; missing={missing}, unknown={foreign})"
                )
            reordered = [by_id[i] for i in new_ids]
            self._commit(reordered)

        logger.info("Reordered %d artifacts", len(reordered))
        self._events.emit(EventKind.ARTIFACTS_CHANGED, "reorder", order=new_ids)
        return _copies(reordered)

    def move(self, artifact_id: str, index: int) -> list[Artifact]:
        """Move one artifact to *index* (clamped), shifting the rest."""
        with self._lock:
            order = [a.id for a in self._artifacts]
            order.pop(self._require_index(artifact_id))
            index = max(0, min(index, len(order)))
            order.insert(index, artifact_id)
            return self.reorder(order)

    # ------------------------------------------------------------------
    # Remote sync
    # ------------------------------------------------------------------

    def sync_all_artifacts(
        self,
        *,
        adapter: RemoteAdapter | None = None,
        timeout: float | None = None,
        cancel_token: CancelToken | None = None,
    ) -> SyncResult:
        """Write the enabled subset, in canonical order, to the remote.

        The remote becomes a mirror of local order and content at the
        moment the snapshot is taken; nothing is merged. The artifact sequence is
        never modified; once the remote write succeeds the sync marker is
        persisted alongside it.

        Raises whatever the adapter raises: ``NotConfiguredError``,
        ``AuthError``, ``NetworkError``, ``ConflictError`` or
        ``QuotaExceededError``. ``PersistenceError`` if the marker cannot be
        stored; the collection then still reports unsynced changes.
        """
        with self._lock:
            snapshot = _copies(a for a in self._artifacts if a.is_enabled)
            snapshot_digest = _digest_enabled(snapshot)
        result = self._write_snapshot(
            adapter or self._remote, snapshot, timeout=timeout, cancel_token=cancel_token
        )
        with self._lock:
            self._commit(
                self._artifacts,
                SyncMarker(digest=snapshot_digest, synced_at=result.finished_at),
            )
        return result

    def restore_artifacts(
        self,
        *,
        adapter: RemoteAdapter | None = None,
        timeout: float | None = None,
        cancel_token: CancelToken | None = None,
        refresh: bool = False,
    ) -> SyncResult:
        """Replace the whole canonical sequence with the remote payload.

        This is a destructive overwrite of local state and front ends must
        confirm it with the user first. The new sequence is persisted before
        it becomes canonical; any failure leaves local state untouched.

        With *refresh*, the backing store is re-read under the same lock
        acquisition, so no other mutation can slip in between.

        Raises
        ------
        NotConfiguredError, AuthError, NetworkError
            From the adapter read.
        DecodeError
            If the payload does not match the schema.
        PersistenceError
            If the restored sequence cannot be written locally.
        """
        remote = adapter or self._remote
        if cancel_token is not None:
            cancel_token.begin_remote("download")
        logger.info("Restoring artifacts via %s", remote.name)
        blob = remote.read(timeout=self._resolve_timeout(timeout))
        payload = decode_payload(blob)
        restored = list(payload.artifacts)
        extras = payload_extras(payload)
        marker = SyncMarker(digest=_digest_enabled(restored))

        with self._lock:
            self._store.save(restored, extras=extras, marker=marker)
            self._artifacts = restored
            self._extras = extras
            self._marker = marker
            if refresh:
                self._reload_locked()
            order = [a.id for a in self._artifacts]

        logger.info("Restored %d artifacts via %s", len(order), remote.name)
        self._events.emit(EventKind.ARTIFACTS_CHANGED, "restore", count=len(order))
        return SyncResult(
            operation=SyncOperation.DOWNLOAD,
            artifact_ids=order,
            payload_digest=blob_digest(blob),
            cancel_requested=cancel_token.cancelled if cancel_token else False,
        )

    def export_to(
        self,
        adapter: RemoteAdapter,
        *,
        ids: Iterable[str] | None = None,
        timeout: float | None = None,
    ) -> SyncResult:
        """Write a backup, disabled artifacts included, to *adapter*.

        With *ids*, only those artifacts are written, still in canonical
        order. Exporting does not count as a sync: ``has_unsynced_changes``
        keeps tracking the configured remote.

        Raises
        ------
        NotFoundError
            If any of *ids* is unknown; nothing is written.
        """
        with self._lock:
            if ids is None:
                snapshot = _copies(self._artifacts)
            else:
                targets = set(ids)
                for artifact_id in targets:
                    self._require_index(artifact_id)
                snapshot = _copies(a for a in self._artifacts if a.id in targets)
        return self._write_snapshot(adapter, snapshot, timeout=timeout)

    def _write_snapshot(
        self,
        remote: RemoteAdapter,
        snapshot: list[Artifact],
        *,
        timeout: float | None,
        cancel_token: CancelToken | None = None,
    ) -> SyncResult:
        with self._lock:
            blob = encode_payload(snapshot, extras=self._extras)
        if cancel_token is not None:
            cancel_token.begin_remote("upload")
        logger.info("Writing %d artifacts via %s", len(snapshot), remote.name)
        remote.write(blob, timeout=self._resolve_timeout(timeout))
        return SyncResult(
            operation=SyncOperation.UPLOAD,
            artifact_ids=[a.id for a in snapshot],
            payload_digest=blob_digest(blob),
            cancel_requested=cancel_token.cancelled if cancel_token else False,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _index_of(self, artifact_id: str) -> int | None:
        for index, artifact in enumerate(self._artifacts):
            if artifact.id == artifact_id:
                return index
        return None

    def _require_index(self, artifact_id: str) -> int:
        index = self._index_of(artifact_id)
        if index is None:
            raise NotFoundError(artifact_id)
        return index

    def _resolve_timeout(self, timeout: float | None) -> float | None:
        return timeout if timeout is not None else self._timeout


def _copies(artifacts: Iterable[Artifact]) -> list[Artifact]:
    return [a.model_copy(deep=True) for a in artifacts]


def _digest_enabled(artifacts: Iterable[Artifact]) -> str:
    return content_digest([a.model_dump(mode="json") for a in artifacts if a.is_enabled])
