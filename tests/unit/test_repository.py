"""Unit tests for ArtifactRepository — ordering, mutations, persistence, sync."""

from __future__ import annotations

import json
import random

import pytest

from subsync.core.cancel import CancelToken
from subsync.core.codec import decode_payload
from subsync.core.errors import (
    ArtifactValidationError,
    AuthError,
    DecodeError,
    NotFoundError,
    OrderMismatchError,
    PersistenceError,
    SyncCancelledError,
)
from subsync.core.events import EventKind
from subsync.core.local_store import LocalArtifactStore
from subsync.core.repository import ArtifactRepository
from subsync.models.artifacts import ArtifactType
from subsync.models.sync import SyncOperation
from subsync.remote.manual_file import ManualFileAdapter


def _ids(artifacts):
    return [a.id for a in artifacts]


def _names(artifacts):
    return [a.name for a in artifacts]


# ---------------------------------------------------------------------------
# Test: queries
# ---------------------------------------------------------------------------


class TestQueries:
    def test_empty_repository(self, repository):
        assert repository.get_all() == []
        assert len(repository) == 0

    def test_get_all_returns_a_copy(self, seeded):
        snapshot = seeded.get_all()
        snapshot.clear()
        assert _ids(seeded.get_all()) == ["1", "2"]

    def test_snapshot_containers_are_detached(self, repository, store, make_artifact):
        repository.save(make_artifact("1", name="A", tags=["x"], future={"k": 1}))
        snapshot = repository.get_all()
        snapshot[0].tags.append("leaked")
        snapshot[0].model_extra["future"]["k"] = 2
        repository.get("1").tags.append("leaked")
        repository.enabled()[0].tags.append("leaked")
        repository.search("A")[0].tags.append("leaked")

        current = repository.get("1")
        assert current.tags == ["x"]
        assert current.model_extra["future"] == {"k": 1}
        stored = store.load().artifacts[0]
        assert stored.tags == ["x"]
        assert stored.model_extra["future"] == {"k": 1}

    def test_mutation_results_are_detached(self, seeded):
        seeded.set_enabled(["1"], False)[0].tags.append("leaked")
        seeded.reorder(["2", "1"])[0].tags.append("leaked")
        seeded.duplicate("1").tags.append("leaked")
        assert all(a.tags == [] for a in seeded.get_all())

    def test_get_by_id(self, seeded):
        assert seeded.get("2").name == "B"

    def test_get_unknown_raises(self, seeded):
        with pytest.raises(NotFoundError) as exc_info:
            seeded.get("missing")
        assert exc_info.value.artifact_id == "missing"

    def test_enabled_subset_keeps_order(self, repository, make_artifact):
        repository.save(make_artifact("1", name="A"))
        repository.save(make_artifact("2", name="B", is_enabled=False))
        repository.save(make_artifact("3", name="C"))
        assert _ids(repository.enabled()) == ["1", "3"]

    def test_search_by_text_and_type(self, repository, make_artifact):
        repository.save(make_artifact("1", name="Ads filter", artifact_type=ArtifactType.FILTER))
        repository.save(make_artifact("2", name="Ads script", artifact_type=ArtifactType.SCRIPT))
        repository.save(make_artifact("3", name="Other", artifact_type=ArtifactType.FILTER))
        assert _ids(repository.search("ads")) == ["1", "2"]
        assert _ids(repository.search("", ArtifactType.FILTER)) == ["1", "3"]
        assert _ids(repository.search("ads", ArtifactType.SCRIPT)) == ["2"]
        assert len(repository.search()) == 3


# ---------------------------------------------------------------------------
# Test: save / create / duplicate
# ---------------------------------------------------------------------------


class TestSave:
    def test_new_ids_append(self, seeded):
        assert _names(seeded.get_all()) == ["A", "B"]

    def test_existing_id_replaced_in_place(self, seeded, make_artifact):
        original = seeded.get("1")
        seeded.save(make_artifact("1", name="A2"))
        assert _names(seeded.get_all()) == ["A2", "B"]
        updated = seeded.get("1")
        assert updated.created_at == original.created_at
        assert updated.updated_at >= original.updated_at

    def test_empty_name_rejected(self, repository, make_artifact):
        with pytest.raises(ArtifactValidationError):
            repository.save(make_artifact("1", name="   "))
        assert repository.get_all() == []

    def test_caller_keeps_no_handle_on_saved_state(self, repository, make_artifact):
        artifact = make_artifact("1", name="A", tags=["x"])
        returned = repository.save(artifact)
        artifact.tags.append("after-save")
        returned.tags.append("after-save")
        assert repository.get("1").tags == ["x"]

    def test_save_persists(self, seeded, store):
        payload = store.load()
        assert _ids(payload.artifacts) == ["1", "2"]

    def test_save_emits_event(self, repository, make_artifact, received):
        repository.save(make_artifact("1"))
        assert received[-1].kind == EventKind.ARTIFACTS_CHANGED
        assert received[-1].action == "save"
        assert received[-1].details["artifact_id"] == "1"

    def test_create(self, repository):
        created = repository.create("Headers", "header", content="X-Test: 1")
        assert repository.get(created.id).type is ArtifactType.HEADER

    def test_create_invalid_type(self, repository):
        with pytest.raises(ArtifactValidationError):
            repository.create("Bad", "not-a-type")
        assert len(repository) == 0

    def test_save_then_delete_is_net_zero(self, seeded, make_artifact):
        seeded.save(make_artifact("3", name="C"))
        seeded.delete("3")
        assert _names(seeded.get_all()) == ["A", "B"]


class TestDuplicate:
    def test_copy_is_appended(self, seeded):
        copy = seeded.duplicate("1")
        assert _names(seeded.get_all()) == ["A", "B", "A copy"]
        assert copy.id not in {"1", "2"}
        assert seeded.get(copy.id).content == seeded.get("1").content

    def test_unknown_id(self, seeded):
        with pytest.raises(NotFoundError):
            seeded.duplicate("nope")
        assert len(seeded) == 2


# ---------------------------------------------------------------------------
# Test: delete
# ---------------------------------------------------------------------------


class TestDelete:
    def test_delete_returns_removed(self, seeded):
        removed = seeded.delete("2")
        assert removed.name == "B"
        assert _names(seeded.get_all()) == ["A"]

    def test_delete_unknown(self, seeded):
        with pytest.raises(NotFoundError):
            seeded.delete("nope")
        assert len(seeded) == 2

    def test_delete_many(self, seeded, make_artifact):
        seeded.save(make_artifact("3", name="C"))
        removed = seeded.delete_many(["1", "3"])
        assert _names(removed) == ["A", "C"]
        assert _names(seeded.get_all()) == ["B"]

    def test_delete_many_is_all_or_nothing(self, seeded):
        with pytest.raises(NotFoundError):
            seeded.delete_many(["1", "nope"])
        assert _ids(seeded.get_all()) == ["1", "2"]


class TestSetEnabled:
    def test_disable_and_enable(self, seeded):
        seeded.set_enabled(["1"], False)
        assert _ids(seeded.enabled()) == ["2"]
        seeded.set_enabled(["1"], True)
        assert _ids(seeded.enabled()) == ["1", "2"]

    def test_unknown_id_changes_nothing(self, seeded):
        with pytest.raises(NotFoundError):
            seeded.set_enabled(["1", "nope"], False)
        assert _ids(seeded.enabled()) == ["1", "2"]

    def test_event_action(self, seeded, received):
        seeded.set_enabled(["2"], False)
        assert received[-1].action == "disable"
        assert received[-1].details["artifact_ids"] == ["2"]


# ---------------------------------------------------------------------------
# Test: reorder / move
# ---------------------------------------------------------------------------


class TestReorder:
    def test_reorder(self, seeded):
        result = seeded.reorder(["2", "1"])
        assert _names(result) == ["B", "A"]
        assert _names(seeded.get_all()) == ["B", "A"]

    def test_partial_order_rejected(self, seeded):
        seeded.reorder(["2", "1"])
        with pytest.raises(OrderMismatchError):
            seeded.reorder(["1"])
        assert _names(seeded.get_all()) == ["B", "A"]

    def test_delete_after_reorder(self, seeded):
        seeded.reorder(["2", "1"])
        seeded.delete("2")
        assert _names(seeded.get_all()) == ["A"]

    @pytest.mark.parametrize(
        "order",
        [["1", "1"], ["1", "2", "3"], ["1", "x"], []],
    )
    def test_non_permutations_rejected(self, seeded, order):
        with pytest.raises(OrderMismatchError):
            seeded.reorder(order)
        assert _ids(seeded.get_all()) == ["1", "2"]

    def test_mismatch_is_a_validation_error(self, seeded):
        with pytest.raises(ArtifactValidationError, match="missing=\\['2'\\]"):
            seeded.reorder(["1"])

    def test_reorder_keeps_updated_at(self, seeded):
        before = {a.id: a.updated_at for a in seeded.get_all()}
        seeded.reorder(["2", "1"])
        assert {a.id: a.updated_at for a in seeded.get_all()} == before

    def test_reorder_persists(self, seeded, store):
        seeded.reorder(["2", "1"])
        assert _ids(store.load().artifacts) == ["2", "1"]

    def test_reorder_event(self, seeded, received):
        seeded.reorder(["2", "1"])
        assert received[-1].action == "reorder"
        assert received[-1].details["order"] == ["2", "1"]

    def test_move(self, seeded, make_artifact):
        seeded.save(make_artifact("3", name="C"))
        assert _names(seeded.move("3", 0)) == ["C", "A", "B"]
        assert _names(seeded.move("3", 99)) == ["A", "B", "C"]
        assert _names(seeded.move("1", -5)) == ["A", "B", "C"]

    def test_move_unknown(self, seeded):
        with pytest.raises(NotFoundError):
            seeded.move("nope", 0)


# ---------------------------------------------------------------------------
# Test: persistence
# ---------------------------------------------------------------------------


class TestPersistence:
    def test_fetch_all_reads_store(self, seeded, store, remote):
        fresh = ArtifactRepository(store, remote)
        assert fresh.get_all() == []
        assert _names(fresh.fetch_all()) == ["A", "B"]
        assert _names(fresh.get_all()) == ["A", "B"]

    def test_fetch_all_decode_error_keeps_cache(self, seeded, store):
        store.path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DecodeError):
            seeded.fetch_all()
        assert _names(seeded.get_all()) == ["A", "B"]

    def test_failed_write_leaves_state(self, tmp_dir, remote, make_artifact):
        blocker = tmp_dir / "blocker"
        blocker.write_text("file, not a directory", encoding="utf-8")
        repo = ArtifactRepository(LocalArtifactStore(blocker / "artifacts.json"), remote)
        with pytest.raises(PersistenceError):
            repo.save(make_artifact("1"))
        assert repo.get_all() == []

    def test_unknown_top_level_fields_survive_mutations(self, store, remote, make_artifact):
        store.path.write_text(
            json.dumps({"schema_version": 1, "artifacts": [], "device": "phone"}),
            encoding="utf-8",
        )
        repo = ArtifactRepository(store, remote)
        repo.fetch_all()
        repo.save(make_artifact("1"))
        assert json.loads(store.path.read_text(encoding="utf-8"))["device"] == "phone"


# ---------------------------------------------------------------------------
# Test: remote sync
# ---------------------------------------------------------------------------


class TestSyncAll:
    def test_uploads_enabled_subset_in_order(self, seeded, remote, make_artifact):
        seeded.save(make_artifact("3", name="C", is_enabled=False))
        seeded.reorder(["2", "3", "1"])
        result = seeded.sync_all_artifacts()
        assert result.operation == SyncOperation.UPLOAD
        assert result.artifact_ids == ["2", "1"]
        assert _ids(decode_payload(remote.blob).artifacts) == ["2", "1"]
        assert result.payload_digest.startswith("sha256:")

    def test_does_not_touch_local_state(self, seeded):
        before = seeded.get_all()
        seeded.sync_all_artifacts()
        assert seeded.get_all() == before

    def test_uses_default_timeout(self, seeded, remote):
        seeded.sync_all_artifacts()
        seeded.sync_all_artifacts(timeout=3.0)
        assert remote.timeouts == [12.0, 3.0]

    def test_unsynced_tracking(self, seeded):
        assert seeded.has_unsynced_changes
        seeded.sync_all_artifacts()
        assert not seeded.has_unsynced_changes
        assert seeded.last_synced_at is not None
        seeded.set_enabled(["1"], False)
        assert seeded.has_unsynced_changes

    def test_sync_state_survives_restart(self, seeded, store, remote):
        result = seeded.sync_all_artifacts()
        fresh = ArtifactRepository(store, remote)
        assert fresh.has_unsynced_changes
        fresh.fetch_all()
        assert not fresh.has_unsynced_changes
        assert fresh.last_synced_at == result.finished_at

        fresh.set_enabled(["2"], False)
        reopened = ArtifactRepository(store, remote)
        reopened.fetch_all()
        assert reopened.has_unsynced_changes

    def test_sync_marker_stays_local(self, seeded, store, remote, tmp_dir):
        seeded.sync_all_artifacts()
        assert "local_sync" in json.loads(store.path.read_text(encoding="utf-8"))
        assert "local_sync" not in json.loads(remote.blob)
        seeded.export_to(ManualFileAdapter(tmp_dir / "backup.json"))
        assert "local_sync" not in json.loads((tmp_dir / "backup.json").read_text(encoding="utf-8"))

    def test_marker_write_failure_keeps_unsynced(self, seeded, store, monkeypatch):
        def _fail(*args, **kwargs):
            raise PersistenceError("disk full")

        monkeypatch.setattr(store, "save", _fail)
        with pytest.raises(PersistenceError):
            seeded.sync_all_artifacts()
        assert seeded.has_unsynced_changes
        assert seeded.last_synced_at is None

    def test_failure_propagates_and_keeps_unsynced(self, seeded, remote):
        remote.fail_with = AuthError("bad token")
        with pytest.raises(AuthError):
            seeded.sync_all_artifacts()
        assert seeded.has_unsynced_changes
        assert remote.writes == []

    def test_cancelled_token_skips_remote(self, seeded, remote):
        token = CancelToken()
        token.cancel()
        with pytest.raises(SyncCancelledError):
            seeded.sync_all_artifacts(cancel_token=token)
        assert remote.writes == []


class TestRestore:
    def test_restore_replaces_everything(self, seeded, remote, tmp_dir, make_artifact):
        other = ArtifactRepository(
            LocalArtifactStore(tmp_dir / "other.json"), remote
        )
        other.save(make_artifact("9", name="Z"))
        other.sync_all_artifacts()

        result = seeded.restore_artifacts()
        assert result.operation == SyncOperation.DOWNLOAD
        assert result.artifact_ids == ["9"]
        assert _names(seeded.get_all()) == ["Z"]
        assert not seeded.has_unsynced_changes

    def test_restore_persists(self, seeded, remote, store):
        seeded.sync_all_artifacts()
        seeded.delete("1")
        seeded.restore_artifacts()
        assert _ids(store.load().artifacts) == ["1", "2"]

    def test_restore_state_survives_restart(self, seeded, remote, store):
        seeded.sync_all_artifacts()
        seeded.delete("1")
        seeded.restore_artifacts()
        fresh = ArtifactRepository(store, remote)
        fresh.fetch_all()
        assert not fresh.has_unsynced_changes
        assert fresh.last_synced_at is not None

    def test_bad_payload_leaves_state(self, seeded, remote):
        remote.blob = b'{"artifacts": [{"name": "no type"}]}'
        with pytest.raises(DecodeError):
            seeded.restore_artifacts()
        assert _names(seeded.get_all()) == ["A", "B"]

    def test_remote_error_leaves_state(self, seeded, remote):
        remote.fail_with = AuthError("bad token")
        with pytest.raises(AuthError):
            seeded.restore_artifacts()
        assert _names(seeded.get_all()) == ["A", "B"]

    def test_restore_event(self, seeded, remote, received):
        seeded.sync_all_artifacts()
        seeded.restore_artifacts()
        assert received[-1].action == "restore"
        assert received[-1].details["count"] == 2


class TestExport:
    def test_export_includes_disabled(self, seeded, tmp_dir):
        seeded.set_enabled(["2"], False)
        target = tmp_dir / "backup.json"
        result = seeded.export_to(ManualFileAdapter(target))
        assert result.artifact_ids == ["1", "2"]
        assert _ids(decode_payload(target.read_bytes()).artifacts) == ["1", "2"]

    def test_export_is_not_a_sync(self, seeded, tmp_dir):
        seeded.export_to(ManualFileAdapter(tmp_dir / "backup.json"))
        assert seeded.has_unsynced_changes
        assert seeded.last_synced_at is None

    def test_export_selected_ids_in_canonical_order(self, seeded, make_artifact, tmp_dir):
        seeded.save(make_artifact("3", name="C", is_enabled=False))
        target = tmp_dir / "subset.json"
        result = seeded.export_to(ManualFileAdapter(target), ids=["3", "1"])
        assert result.artifact_ids == ["1", "3"]
        assert _names(decode_payload(target.read_bytes()).artifacts) == ["A", "C"]

    def test_export_unknown_id_writes_nothing(self, seeded, tmp_dir):
        target = tmp_dir / "subset.json"
        with pytest.raises(NotFoundError):
            seeded.export_to(ManualFileAdapter(target), ids=["1", "missing"])
        assert not target.exists()


class TestRoundTrip:
    def test_restore_after_sync_yields_enabled_subset(self, seeded, make_artifact):
        seeded.save(make_artifact("3", name="C", is_enabled=False))
        seeded.save(make_artifact("4", name="D"))
        expected = [(a.id, a.content) for a in seeded.enabled()]

        seeded.sync_all_artifacts()
        seeded.restore_artifacts()
        assert [(a.id, a.content) for a in seeded.get_all()] == expected


class TestNetEffect:
    def test_random_save_delete_sequence(self, repository, make_artifact):
        rng = random.Random(7)
        model: dict[str, str] = {}
        for step in range(200):
            artifact_id = str(rng.randint(0, 15))
            if rng.random() < 0.6:
                name = f"n{step}"
                repository.save(make_artifact(artifact_id, name=name))
                model[artifact_id] = name
            elif artifact_id in model:
                repository.delete(artifact_id)
                del model[artifact_id]
            else:
                with pytest.raises(NotFoundError):
                    repository.delete(artifact_id)

        result = repository.get_all()
        assert len({a.id for a in result}) == len(result)
        assert {a.id: a.name for a in result} == model
