"""GitHub Gist adapter.

Stores the payload as a single file inside a secret gist.

GitHub REST routes used
-----------------------
GET   /gists/{gist_id}   – read the gist (file content, or raw_url when truncated)
GET   /gists             – find the gist holding the sync file when no id is set
PATCH /gists/{gist_id}   – replace the sync file
POST  /gists             – create the gist on first upload

Authentication is a personal access token with the ``gist`` scope, sent as
``Authorization: Bearer <token>``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from subsync.core.errors import DecodeError, NotConfiguredError
from subsync.remote._http import check_response, translate_transport_errors

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_FILENAME = "subsync-artifacts.json"
GIST_DESCRIPTION = "subsync artifacts backup"


class GistAdapter:
    """Remote adapter backed by a GitHub gist.

    Parameters
    ----------
    token:
        GitHub token with gist scope. An empty token leaves the adapter
        unconfigured.
    gist_id:
        Existing gist to use. When omitted, the first gist holding
        *filename* is used, and a new secret gist is created on first write.
    filename:
        Name of the file inside the gist.
    timeout:
        Default per-request timeout in seconds.
    client:
        Pre-built ``httpx.Client`` (tests pass one with a mock transport).
    """

    def __init__(
        self,
        token: str,
        *,
        gist_id: str | None = None,
        filename: str = DEFAULT_FILENAME,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        user_agent: str = "subsync",
        client: httpx.Client | None = None,
    ) -> None:
        self._token = token
        self._gist_id = gist_id or None
        self._filename = filename
        self._html_url = ""
        self._client = client or httpx.Client(base_url=api_url.rstrip("/"), timeout=timeout)
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": user_agent,
        }

    @property
    def name(self) -> str:
        return "gist"

    @property
    def is_configured(self) -> bool:
        return bool(self._token)

    @property
    def gist_id(self) -> str | None:
        return self._gist_id

    @property
    def location(self) -> str:
        if self._html_url:
            return self._html_url
        return f"https://gist.github.com/{self._gist_id}" if self._gist_id else ""

    # ------------------------------------------------------------------
    # RemoteAdapter
    # ------------------------------------------------------------------

    def read(self, timeout: float | None = None) -> bytes:
        self._require_token()
        gist_id = self._gist_id or self._locate(timeout)
        if gist_id is None:
            raise NotConfiguredError(f"No gist holding {self._filename} was found")

        gist = self._request("GET", f"/gists/{gist_id}", timeout).json()
        self._remember(gist)
        entry = (gist.get("files") or {}).get(self._filename)
        if entry is None:
            raise NotConfiguredError(f"Gist {gist_id} has no file {self._filename}")
        if entry.get("truncated"):
            raw = self._request("GET", entry["raw_url"], timeout)
            return raw.content
        content = entry.get("content")
        if content is None:
            raise DecodeError(f"Gist {gist_id} returned no content for {self._filename}")
        return content.encode("utf-8")

    def write(self, blob: bytes, timeout: float | None = None) -> None:
        self._require_token()
        files = {self._filename: {"content": blob.decode("utf-8")}}
        gist_id = self._gist_id or self._locate(timeout)
        if gist_id is None:
            gist = self._request(
                "POST",
                "/gists",
                timeout,
                json={"description": GIST_DESCRIPTION, "public": False, "files": files},
            ).json()
            logger.info("GistAdapter: created gist %s", gist.get("id"))
        else:
            gist = self._request("PATCH", f"/gists/{gist_id}", timeout, json={"files": files}).json()
        self._remember(gist)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _locate(self, timeout: float | None) -> str | None:
        gists = self._request("GET", "/gists", timeout, params={"per_page": 100}).json()
        for gist in gists:
            if self._filename in (gist.get("files") or {}):
                logger.debug("GistAdapter: found %s in gist %s", self._filename, gist["id"])
                self._remember(gist)
                return self._gist_id
        return None

    def _remember(self, gist: dict[str, Any]) -> None:
        if gist.get("id"):
            self._gist_id = gist["id"]
        if gist.get("html_url"):
            self._html_url = gist["html_url"]

    def _request(
        self, method: str, url: str, timeout: float | None, **kwargs: Any
    ) -> httpx.Response:
        logger.debug("GistAdapter: %s %s", method, url)
        with translate_transport_errors("GitHub Gist"):
            response = self._client.request(
                method,
                url,
                headers=self._headers,
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
                **kwargs,
            )
        return check_response(response, "GitHub Gist")

    def _require_token(self) -> None:
        if not self._token:
            raise NotConfiguredError("GitHub Gist token is not set")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "GistAdapter":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
