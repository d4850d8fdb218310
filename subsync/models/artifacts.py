"""Artifact models — named, typed configuration documents.

Artifacts are frozen Pydantic models. Every mutation produces a new instance
through ``model_copy``. Frozen only guards attribute assignment: ``tags`` and
unknown extra fields are still mutable containers, so the repository deep
copies artifacts on the way in and on the way out.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ArtifactType(str, Enum):
    """The closed set of artifact kinds."""

    REWRITE = "rewrite"
    REDIRECT = "redirect"
    SCRIPT = "script"
    RULE = "rule"
    FILTER = "filter"
    HEADER = "header"


class Artifact(BaseModel):
    """A named rule/config document.

    Fields the current schema does not know about are kept as extras so a
    document written by a newer client survives a save or sync untouched.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    type: ArtifactType
    description: str | None = None
    is_enabled: bool = True
    content: str = ""
    platform: str | None = None  # target client, e.g. "surge", "loon"
    source: str | None = None  # origin URL
    tags: list[str] = []
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def touched(self, **changes: Any) -> Artifact:
        """Return a copy with *changes* applied and ``updated_at`` refreshed."""
        changes.setdefault("updated_at", utc_now())
        return self.model_copy(update=changes)

    def duplicated(self) -> Artifact:
        """Return a copy with a fresh identity and a derived name."""
        now = utc_now()
        return self.model_copy(
            update={
                "id": str(uuid.uuid4()),
                "name": f"{self.name} copy",
                "created_at": now,
                "updated_at": now,
            },
            deep=True,
        )

    def matches(self, text: str) -> bool:
        """Case-insensitive match against name, content and tags."""
        needle = text.casefold()
        return (
            needle in self.name.casefold()
            or needle in self.content.casefold()
            or needle in "".join(self.tags).casefold()
        )
