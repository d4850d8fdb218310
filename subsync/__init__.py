"""subsync: artifact repository and cloud sync for a subscription manager.

Keeps an ordered collection of rule/config artifacts on disk and mirrors it
to a GitHub Gist, a GitLab Snippet, or a manual backup file:
  - single-owner repository with atomic reorder and restore
  - single-flight upload/download coordinator with cooperative cancel
  - versioned payload that preserves fields from newer clients
"""

__version__ = "0.1.0"
__description__ = "Artifact repository and cloud sync core for a subscription manager"

from subsync.config import SubsyncSettings
from subsync.core.coordinator import SyncCoordinator
from subsync.core.repository import ArtifactRepository
from subsync.models.artifacts import Artifact, ArtifactType
from subsync.remote.factory import create_remote_adapter

__all__ = [
    "Artifact",
    "ArtifactRepository",
    "ArtifactType",
    "SubsyncSettings",
    "SyncCoordinator",
    "create_remote_adapter",
    "__version__",
]
