"""Shared test fixtures for subsync."""

from __future__ import annotations

import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from subsync.core.coordinator import SyncCoordinator
from subsync.core.events import EventChannel, SyncEvent
from subsync.core.local_store import LocalArtifactStore
from subsync.core.repository import ArtifactRepository
from subsync.models.artifacts import Artifact, ArtifactType


class MemoryRemote:
    """In-memory remote adapter that records every call.

    ``fail_with`` makes the next read/write raise the given exception.
    ``gate`` (a threading.Event) blocks writes until set, so tests can hold
    an upload in flight; ``started`` is set once a write begins.
    """

    def __init__(self, blob: bytes | None = None, *, configured: bool = True) -> None:
        self.blob = blob
        self.configured = configured
        self.writes: list[bytes] = []
        self.reads = 0
        self.fail_with: Exception | None = None
        self.gate: threading.Event | None = None
        self.started = threading.Event()
        self.timeouts: list[float | None] = []

    @property
    def name(self) -> str:
        return "memory"

    @property
    def is_configured(self) -> bool:
        return self.configured

    @property
    def location(self) -> str:
        return "memory://artifacts"

    def read(self, timeout: float | None = None) -> bytes:
        self.reads += 1
        self.timeouts.append(timeout)
        self.started.set()
        if self.gate is not None:
            self.gate.wait(5)
        if self.fail_with is not None:
            raise self.fail_with
        assert self.blob is not None, "nothing stored"
        return self.blob

    def write(self, blob: bytes, timeout: float | None = None) -> None:
        self.timeouts.append(timeout)
        self.started.set()
        if self.gate is not None:
            self.gate.wait(5)
        if self.fail_with is not None:
            raise self.fail_with
        self.writes.append(blob)
        self.blob = blob


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for store files."""
    return tmp_path


@pytest.fixture
def store(tmp_dir: Path) -> LocalArtifactStore:
    """Provide a LocalArtifactStore in a temp directory."""
    return LocalArtifactStore(tmp_dir / "artifacts.json")


@pytest.fixture
def remote() -> MemoryRemote:
    """Provide an empty, configured in-memory remote."""
    return MemoryRemote()


@pytest.fixture
def events() -> EventChannel:
    return EventChannel()


@pytest.fixture
def received(events: EventChannel) -> list[SyncEvent]:
    """Collect every event published on the shared channel."""
    collected: list[SyncEvent] = []
    events.subscribe(collected.append)
    return collected


@pytest.fixture
def repository(
    store: LocalArtifactStore, remote: MemoryRemote, events: EventChannel
) -> ArtifactRepository:
    """Provide an empty repository wired to the temp store and memory remote."""
    return ArtifactRepository(store, remote, events=events, timeout=12.0)


@pytest.fixture
def coordinator(repository: ArtifactRepository) -> SyncCoordinator:
    return SyncCoordinator(repository)


# ---------------------------------------------------------------------------
# Artifact factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_artifact() -> Callable[..., Artifact]:
    """Factory fixture: build an Artifact with sensible defaults."""

    def _factory(
        artifact_id: str | None = None,
        name: str = "Rule",
        artifact_type: ArtifactType = ArtifactType.RULE,
        **overrides: Any,
    ) -> Artifact:
        defaults: dict[str, Any] = {
            "name": name,
            "type": artifact_type,
            "content": f"# {name}\nDOMAIN-SUFFIX,example.com,DIRECT",
        }
        if artifact_id is not None:
            defaults["id"] = artifact_id
        defaults.update(overrides)
        return Artifact(**defaults)

    return _factory


@pytest.fixture
def seeded(
    repository: ArtifactRepository, make_artifact: Callable[..., Artifact]
) -> ArtifactRepository:
    """Repository holding A (id "1") and B (id "2"), in that order."""
    repository.save(make_artifact("1", name="A"))
    repository.save(make_artifact("2", name="B"))
    return repository
