"""Adapter selection — the only place that branches on the sync platform."""

from __future__ import annotations

import logging
from collections.abc import Callable

from subsync.config import SubsyncSettings
from subsync.models.sync import SyncPlatform
from subsync.remote import RemoteAdapter
from subsync.remote.gist import GistAdapter
from subsync.remote.gitlab import GitLabSnippetAdapter
from subsync.remote.unconfigured import UnconfiguredAdapter

logger = logging.getLogger(__name__)


def _gist(settings: SubsyncSettings) -> RemoteAdapter:
    return GistAdapter(
        settings.gist_token,
        gist_id=settings.gist_id or None,
        filename=settings.sync_filename,
        api_url=settings.github_api_url,
        timeout=settings.timeout_seconds,
        user_agent=settings.user_agent,
    )


def _gitlab(settings: SubsyncSettings) -> RemoteAdapter:
    return GitLabSnippetAdapter(
        settings.gitlab_token,
        snippet_id=settings.gitlab_snippet_id or None,
        filename=settings.sync_filename,
        api_url=settings.gitlab_api_url,
        timeout=settings.timeout_seconds,
        user_agent=settings.user_agent,
    )


def _none(settings: SubsyncSettings) -> RemoteAdapter:
    return UnconfiguredAdapter()


_BUILDERS: dict[SyncPlatform, Callable[[SubsyncSettings], RemoteAdapter]] = {
    SyncPlatform.NONE: _none,
    SyncPlatform.GIST: _gist,
    SyncPlatform.GITLAB: _gitlab,
}


def create_remote_adapter(settings: SubsyncSettings) -> RemoteAdapter:
    """Build the adapter for ``settings.sync_platform``."""
    adapter = _BUILDERS[settings.sync_platform](settings)
    logger.debug(
        "Selected %s adapter (configured=%s)", adapter.name, adapter.is_configured
    )
    return adapter
