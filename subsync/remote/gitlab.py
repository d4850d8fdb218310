"""GitLab Snippet adapter.

GitLab REST routes used (``{api_url}`` defaults to https://gitlab.com/api/v4)
------------------------------------------------------------------------------
GET  /snippets/{id}/raw   – read the snippet's content
PUT  /snippets/{id}       – replace the sync file
POST /snippets            – create a private snippet on first upload

Authentication uses the ``PRIVATE-TOKEN`` header with a token carrying the
``api`` scope.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from subsync.core.errors import NotConfiguredError
from subsync.remote._http import check_response, translate_transport_errors

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://gitlab.com/api/v4"
DEFAULT_FILENAME = "subsync-artifacts.json"
SNIPPET_TITLE = "subsync artifacts backup"


class GitLabSnippetAdapter:
    """Remote adapter backed by a GitLab personal snippet."""

    def __init__(
        self,
        token: str,
        *,
        snippet_id: str | None = None,
        filename: str = DEFAULT_FILENAME,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        user_agent: str = "subsync",
        client: httpx.Client | None = None,
    ) -> None:
        self._token = token
        self._snippet_id = snippet_id or None
        self._filename = filename
        self._web_url = ""
        self._client = client or httpx.Client(base_url=api_url.rstrip("/"), timeout=timeout)
        self._headers = {"PRIVATE-TOKEN": token, "User-Agent": user_agent}

    @property
    def name(self) -> str:
        return "gitlab"

    @property
    def is_configured(self) -> bool:
        return bool(self._token)

    @property
    def snippet_id(self) -> str | None:
        return self._snippet_id

    @property
    def location(self) -> str:
        return self._web_url

    def read(self, timeout: float | None = None) -> bytes:
        self._require_token()
        if self._snippet_id is None:
            raise NotConfiguredError("No GitLab snippet id configured; upload first")
        return self._request("GET", f"/snippets/{self._snippet_id}/raw", timeout).content

    def write(self, blob: bytes, timeout: float | None = None) -> None:
        self._require_token()
        content = blob.decode("utf-8")
        if self._snippet_id is None:
            snippet = self._request(
                "POST",
                "/snippets",
                timeout,
                json={
                    "title": SNIPPET_TITLE,
                    "visibility": "private",
                    "files": [{"file_path": self._filename, "content": content}],
                },
            ).json()
            logger.info("GitLabSnippetAdapter: created snippet %s", snippet.get("id"))
        else:
            snippet = self._request(
                "PUT",
                f"/snippets/{self._snippet_id}",
                timeout,
                json={
                    "files": [
                        {"action": "update", "file_path": self._filename, "content": content}
                    ]
                },
            ).json()
        if snippet.get("id") is not None:
            self._snippet_id = str(snippet["id"])
        self._web_url = snippet.get("web_url", self._web_url)

    def _request(
        self, method: str, url: str, timeout: float | None, **kwargs: Any
    ) -> httpx.Response:
        logger.debug("GitLabSnippetAdapter: %s %s", method, url)
        with translate_transport_errors("GitLab Snippet"):
            response = self._client.request(
                method,
                url,
                headers=self._headers,
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
                **kwargs,
            )
        return check_response(response, "GitLab Snippet")

    def _require_token(self) -> None:
        if not self._token:
            raise NotConfiguredError("GitLab token is not set")

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "GitLabSnippetAdapter":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
