"""
HTTP transport — raw byte transfer over urllib.

Two calls cover everything the engine needs: fetch a JSON document,
and stream a response body in chunks.  Every network or HTTP failure
surfaces as ``TransferError``; HTTP errors keep their status code on
the exception so callers can map 404 to something friendlier.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Iterator
from typing import Any

from dyst import __version__
from dyst.core.errors import TransferError

logger = logging.getLogger(__name__)

USER_AGENT = f"dyst/{__version__}"
CHUNK_SIZE = 64 * 1024


class HttpStatusError(TransferError):
    """The server answered with a non-success HTTP status."""

    def __init__(self, message: str, status: int, reason: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.reason = reason


class HttpTransport:
    """urllib-backed transport with an optional bearer token."""

    def __init__(self, *, token: str | None = None, timeout: float = 30.0):
        self.token = token
        self.timeout = timeout

    def _request(self, url: str, accept: str) -> urllib.request.Request:
        headers = {"User-Agent": USER_AGENT, "Accept": accept}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return urllib.request.Request(url, headers=headers)

    def _open(self, url: str, accept: str):
        try:
            return urllib.request.urlopen(self._request(url, accept), timeout=self.timeout)
        except urllib.error.HTTPError as e:
            reason = _error_message(e)
            raise HttpStatusError(
                f"GET {url} failed: HTTP {e.code} ({reason})", e.code, reason
            ) from e
        except (urllib.error.URLError, OSError) as e:
            raise TransferError(f"GET {url} failed: {e}") from e

    def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET ``url`` and decode the JSON body."""
        if params:
            url = f"{url}?{urllib.parse.urlencode(params)}"
        logger.debug("GET %s", url)
        with self._open(url, "application/vnd.github+json") as resp:
            try:
                body = resp.read()
            except OSError as e:
                raise TransferError(f"Reading {url} failed: {e}") from e
        try:
            return json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise TransferError(f"Invalid JSON from {url}: {e}") from e

    def stream(
        self,
        url: str,
        *,
        chunk_size: int = CHUNK_SIZE,
        progress_callback=None,
    ) -> Iterator[bytes]:
        """Yield the response body of ``url`` chunk by chunk.

        ``progress_callback(bytes_downloaded, total_bytes)`` is called
        after each chunk; ``total_bytes`` is 0 if the server sent no
        Content-Length.
        """
        logger.info("Downloading %s", url)
        with self._open(url, "application/octet-stream") as resp:
            total = int(resp.headers.get("Content-Length") or 0)
            downloaded = 0
            while True:
                try:
                    chunk = resp.read(chunk_size)
                except OSError as e:
                    raise TransferError(f"Download of {url} interrupted: {e}") from e
                if not chunk:
                    break
                downloaded += len(chunk)
                if progress_callback:
                    progress_callback(downloaded, total)
                yield chunk
        logger.debug("Downloaded %d bytes from %s", downloaded, url)


def _error_message(error: urllib.error.HTTPError) -> str:
    """Best-effort ``message`` field of a GitHub JSON error body."""
    try:
        payload = json.loads(error.read() or b"{}")
    except (OSError, ValueError):
        return error.reason or ""
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return str(error.reason or "")
