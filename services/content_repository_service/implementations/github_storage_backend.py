"""GitHub contents API storage backend implementation."""

from __future__ import annotations

import asyncio
import base64
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, NoReturn
from urllib.parse import quote

import aiohttp
from inkwell_service_libs.error_handling import (
    raise_authentication_error,
    raise_conflict_error,
    raise_connection_error,
    raise_external_service_error,
    raise_resource_not_found,
    raise_timeout_error,
    raise_validation_error,
)
from inkwell_service_libs.logging_utils import create_service_logger

from services.content_repository_service.implementations.storage_keys import (
    join_key,
    normalize_key,
    to_bytes,
)
from services.content_repository_service.protocols import StorageBackendProtocol

logger = create_service_logger("content_repository.storage.github")

SERVICE = "content_repository_service"
EXTERNAL = "github"


class GitHubStorageBackend(StorageBackendProtocol):
    """
    Storage backend committing every write to a GitHub repository branch.

    Each file carries a blob ``sha`` used as its concurrency token. Plain
    ``write``/``delete`` fetch the current sha right before the request, so
    writes and deletes to one key are serialized behind an in-process lock.
    Separate processes can still interleave between the fetch and the
    request; callers needing cross-process safety read with
    ``read_with_token`` and write with ``write_with_token``.
    """

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        token: str,
        repo: str,
        branch: str = "main",
        api_url: str = "https://api.github.com",
        timeout_seconds: float = 30.0,
    ) -> None:
        self.http_session = http_session
        self.repo = repo
        self.branch = branch
        self.api_url = api_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        # key -> (lock, holders and waiters)
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}

    @asynccontextmanager
    async def _key_lock(self, key: str) -> AsyncIterator[None]:
        """Serialize mutations of one key, forgetting the lock once nobody uses it."""
        lock, users = self._locks.get(key, (asyncio.Lock(), 0))
        self._locks[key] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[key]
            if users == 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    def contents_url(self, key: str) -> str:
        return f"{self.api_url}/repos/{self.repo}/contents/{quote(normalize_key(key), safe='/')}"

    def _ref_url(self, key: str) -> str:
        return f"{self.contents_url(key)}?ref={quote(self.branch, safe='')}"

    def _raise_for_status(self, status: int, body: str, operation: str, key: str) -> NoReturn:
        if status in (401, 403):
            raise_authentication_error(
                service=SERVICE,
                operation=operation,
                message=f"GitHub rejected credentials for '{key}' (HTTP {status})",
                key=key,
                status=status,
            )
        if status == 404:
            raise_resource_not_found(
                service=SERVICE,
                operation=operation,
                resource_type="file",
                resource_id=key,
            )
        if status in (409, 422):
            raise_conflict_error(
                service=SERVICE,
                operation=operation,
                message=f"GitHub reported a conflicting revision for '{key}' (HTTP {status})",
                key=key,
                status=status,
            )
        raise_external_service_error(
            service=SERVICE,
            operation=operation,
            external_service=EXTERNAL,
            message=f"GitHub returned HTTP {status} for '{key}'",
            key=key,
            status=status,
            body=body[:500],
        )

    async def _request(
        self,
        method: str,
        url: str,
        operation: str,
        key: str,
        payload: dict[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> Any:
        """Send one API request and return the decoded JSON body, or None on a tolerated 404."""
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with self.http_session.request(
                method, url, headers=self._headers, json=payload, timeout=timeout
            ) as response:
                if response.status == 404 and allow_not_found:
                    return None
                if response.status >= 400:
                    body = await response.text()
                    logger.error(
                        "GitHub API request failed",
                        method=method,
                        key=key,
                        status_code=response.status,
                    )
                    self._raise_for_status(response.status, body, operation, key)
                if response.status == 204:
                    return None
                return await response.json(content_type=None)

        except asyncio.TimeoutError:
            logger.error(
                "Timeout while calling GitHub API",
                method=method,
                key=key,
                timeout_seconds=self.timeout_seconds,
            )
            raise_timeout_error(
                service=SERVICE,
                operation=operation,
                timeout_seconds=self.timeout_seconds,
                message=f"GitHub {method} for '{key}' timed out",
                key=key,
            )
        except aiohttp.ClientError as e:
            logger.error(
                "HTTP client error while calling GitHub API",
                method=method,
                key=key,
                error=str(e),
                exc_info=True,
            )
            raise_connection_error(
                service=SERVICE,
                operation=operation,
                target=self.api_url,
                message=f"GitHub {method} for '{key}' failed: {e}",
                key=key,
            )

    async def _fetch_file(self, key: str, operation: str) -> dict[str, Any] | None:
        metadata = await self._request(
            "GET", self._ref_url(key), operation, key, allow_not_found=True
        )
        if metadata is None:
            return None
        if isinstance(metadata, list):
            raise_validation_error(
                service=SERVICE,
                operation=operation,
                field="key",
                message=f"'{key}' is a directory",
                key=key,
            )
        return metadata

    async def _decode_content(self, metadata: dict[str, Any], key: str) -> bytes:
        if metadata.get("encoding") == "base64":
            return base64.b64decode(metadata.get("content", ""))
        # Files above 1 MB come back without inline content
        blob_url = f"{self.api_url}/repos/{self.repo}/git/blobs/{metadata['sha']}"
        blob = await self._request("GET", blob_url, "read", key)
        return base64.b64decode(blob.get("content", ""))

    async def _put(
        self, key: str, content: bytes, message: str, sha: str | None, operation: str
    ) -> str:
        payload: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content).decode("ascii"),
            "branch": self.branch,
        }
        if sha:
            payload["sha"] = sha
        result = await self._request("PUT", self.contents_url(key), operation, key, payload)
        new_sha: str = result["content"]["sha"]
        logger.info("Committed file to GitHub", key=key, created=sha is None, message=message)
        return new_sha

    async def read(self, key: str) -> bytes:
        content, _ = await self.read_with_token(key)
        return content

    async def read_with_token(self, key: str) -> tuple[bytes, str]:
        """Return the file content together with its current sha."""
        key = normalize_key(key)
        metadata = await self._fetch_file(key, "read")
        if metadata is None:
            raise_resource_not_found(
                service=SERVICE, operation="read", resource_type="file", resource_id=key
            )
        return await self._decode_content(metadata, key), metadata["sha"]

    async def write(
        self, key: str, content: bytes | str, commit_message: str | None = None
    ) -> None:
        key = normalize_key(key)
        async with self._key_lock(key):
            metadata = await self._fetch_file(key, "write")
            sha = metadata["sha"] if metadata else None
            await self._put(key, to_bytes(content), commit_message or f"Update {key}", sha, "write")

    async def write_with_token(
        self,
        key: str,
        content: bytes | str,
        expected_token: str | None,
        commit_message: str | None = None,
    ) -> str:
        """
        Write only if the file still has expected_token as its sha.

        Pass None to require that the file does not exist yet. Returns the
        new sha.

        Raises:
            InkwellError: CONFLICT when the stored sha differs
        """
        key = normalize_key(key)
        async with self._key_lock(key):
            metadata = await self._fetch_file(key, "write")
            current = metadata["sha"] if metadata else None
            if current != expected_token:
                raise_conflict_error(
                    service=SERVICE,
                    operation="write",
                    message=f"'{key}' changed since it was read",
                    key=key,
                    expected_token=expected_token,
                    current_token=current,
                )
            return await self._put(
                key, to_bytes(content), commit_message or f"Update {key}", current, "write"
            )

    async def delete(self, key: str, commit_message: str | None = None) -> None:
        key = normalize_key(key)
        async with self._key_lock(key):
            metadata = await self._fetch_file(key, "delete")
            if metadata is None:
                raise_resource_not_found(
                    service=SERVICE, operation="delete", resource_type="file", resource_id=key
                )
            payload = {
                "message": commit_message or f"Delete {key}",
                "sha": metadata["sha"],
                "branch": self.branch,
            }
            await self._request("DELETE", self.contents_url(key), "delete", key, payload)
            logger.info("Deleted file from GitHub", key=key)

    async def exists(self, key: str) -> bool:
        return await self._fetch_file(normalize_key(key), "exists") is not None

    async def list(self, dir_key: str) -> list[str]:
        dir_key = normalize_key(dir_key)
        items = await self._request(
            "GET", self._ref_url(dir_key), "list", dir_key, allow_not_found=True
        )
        if not isinstance(items, list):
            return []
        return [item["name"] for item in items if item.get("type") == "file"]

    async def ensure_dir(self, dir_key: str) -> None:
        keep_key = join_key(dir_key, ".gitkeep")
        if not await self.exists(keep_key):
            await self.write(keep_key, b"", f"Create directory {normalize_key(dir_key)}")
