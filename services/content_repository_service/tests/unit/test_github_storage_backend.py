"""
Behavior tests for the GitHub contents API storage backend.

aioresponses simulates the API so status mapping, sha handling and commit
payloads can be verified without network access.
"""

from __future__ import annotations

import asyncio
import base64
from typing import Any, AsyncIterator

import aiohttp
import pytest
from aioresponses import aioresponses
from inkwell_common.error_enums import ErrorCode
from inkwell_service_libs.error_handling import InkwellError
from yarl import URL

from services.content_repository_service.implementations.github_storage_backend import (
    GitHubStorageBackend,
)

API = "https://api.github.com/repos/octo/site/contents"


def _file(content: bytes, sha: str = "sha-1") -> dict[str, Any]:
    return {
        "type": "file",
        "sha": sha,
        "encoding": "base64",
        "content": base64.b64encode(content).decode("ascii"),
    }


def _sent_json(m: aioresponses, method: str, url: str) -> dict[str, Any]:
    calls = m.requests[(method, URL(url))]
    return calls[-1].kwargs["json"]


class TestGitHubStorageBackend:
    """Test the contents API mapping, not aiohttp internals."""

    @pytest.fixture
    async def client_session(self) -> AsyncIterator[aiohttp.ClientSession]:
        async with aiohttp.ClientSession() as session:
            yield session

    @pytest.fixture
    def github(self, client_session: aiohttp.ClientSession) -> GitHubStorageBackend:
        return GitHubStorageBackend(
            client_session, token="t0ken", repo="octo/site", branch="main", timeout_seconds=5
        )

    async def test_read_decodes_base64_content(self, github: GitHubStorageBackend) -> None:
        with aioresponses() as m:
            m.get(f"{API}/content/a.json?ref=main", payload=_file(b'{"a": 1}', "abc"))

            content, token = await github.read_with_token("content/a.json")

        assert content == b'{"a": 1}'
        assert token == "abc"

    async def test_large_file_is_read_through_blob_api(self, github: GitHubStorageBackend) -> None:
        with aioresponses() as m:
            m.get(
                f"{API}/big.bin?ref=main",
                payload={"type": "file", "sha": "blob-1", "encoding": "none", "content": ""},
            )
            m.get(
                "https://api.github.com/repos/octo/site/git/blobs/blob-1",
                payload={"content": base64.b64encode(b"large").decode("ascii")},
            )

            assert await github.read("big.bin") == b"large"

    async def test_missing_file_is_not_found(self, github: GitHubStorageBackend) -> None:
        with aioresponses() as m:
            m.get(f"{API}/nope.json?ref=main", status=404, body="Not Found")

            with pytest.raises(InkwellError) as exc_info:
                await github.read("nope.json")

        assert exc_info.value.error_code == ErrorCode.RESOURCE_NOT_FOUND.value

    async def test_directory_cannot_be_read(self, github: GitHubStorageBackend) -> None:
        with aioresponses() as m:
            m.get(f"{API}/content?ref=main", payload=[{"type": "dir", "name": "entries"}])

            with pytest.raises(InkwellError) as exc_info:
                await github.read("content")

        assert exc_info.value.error_code == ErrorCode.VALIDATION_ERROR.value

    async def test_write_new_file_commits_without_sha(self, github: GitHubStorageBackend) -> None:
        url = f"{API}/content/new.json"
        with aioresponses() as m:
            m.get(f"{url}?ref=main", status=404)
            m.put(url, status=201, payload={"content": {"sha": "new-sha"}})

            await github.write("content/new.json", '{"x": 1}', "Create posts: New")

            sent = _sent_json(m, "PUT", url)

        assert sent["message"] == "Create posts: New"
        assert sent["branch"] == "main"
        assert base64.b64decode(sent["content"]) == b'{"x": 1}'
        assert "sha" not in sent

    async def test_write_existing_file_sends_current_sha(
        self, github: GitHubStorageBackend
    ) -> None:
        url = f"{API}/a.json"
        with aioresponses() as m:
            m.get(f"{url}?ref=main", payload=_file(b"old", "sha-old"))
            m.put(url, payload={"content": {"sha": "sha-new"}})

            await github.write("a.json", b"new")

            sent = _sent_json(m, "PUT", url)

        assert sent["sha"] == "sha-old"
        assert sent["message"] == "Update a.json"

    async def test_write_with_stale_token_is_a_conflict(
        self, github: GitHubStorageBackend
    ) -> None:
        url = f"{API}/a.json"
        with aioresponses() as m:
            m.get(f"{url}?ref=main", payload=_file(b"theirs", "sha-theirs"))

            with pytest.raises(InkwellError) as exc_info:
                await github.write_with_token("a.json", b"mine", expected_token="sha-mine")

            assert ("PUT", URL(url)) not in m.requests

        assert exc_info.value.error_code == ErrorCode.CONFLICT.value
        assert exc_info.value.details["current_token"] == "sha-theirs"

    async def test_write_with_matching_token_returns_new_sha(
        self, github: GitHubStorageBackend
    ) -> None:
        url = f"{API}/a.json"
        with aioresponses() as m:
            m.get(f"{url}?ref=main", payload=_file(b"old", "sha-1"))
            m.put(url, payload={"content": {"sha": "sha-2"}})

            assert await github.write_with_token("a.json", b"new", expected_token="sha-1") == (
                "sha-2"
            )

    async def test_delete_sends_sha_and_message(self, github: GitHubStorageBackend) -> None:
        url = f"{API}/a.json"
        with aioresponses() as m:
            m.get(f"{url}?ref=main", payload=_file(b"x", "sha-del"))
            m.delete(url, payload={"commit": {"sha": "c1"}})

            await github.delete("a.json", "Delete posts: a")

            sent = _sent_json(m, "DELETE", url)

        assert sent == {"message": "Delete posts: a", "sha": "sha-del", "branch": "main"}

    async def test_list_returns_file_names(self, github: GitHubStorageBackend) -> None:
        with aioresponses() as m:
            m.get(
                f"{API}/content/media?ref=main",
                payload=[
                    {"type": "file", "name": "a.json"},
                    {"type": "dir", "name": "nested"},
                    {"type": "file", "name": "b.json"},
                ],
            )
            m.get(f"{API}/missing?ref=main", status=404)

            assert await github.list("content/media") == ["a.json", "b.json"]
            assert await github.list("missing") == []

    @pytest.mark.parametrize(
        "status, expected",
        [
            (401, ErrorCode.AUTHENTICATION_ERROR),
            (403, ErrorCode.AUTHENTICATION_ERROR),
            (409, ErrorCode.CONFLICT),
            (422, ErrorCode.CONFLICT),
            (502, ErrorCode.EXTERNAL_SERVICE_ERROR),
        ],
    )
    async def test_put_status_mapping(
        self, github: GitHubStorageBackend, status: int, expected: ErrorCode
    ) -> None:
        url = f"{API}/a.json"
        with aioresponses() as m:
            m.get(f"{url}?ref=main", status=404)
            m.put(url, status=status, body="error")

            with pytest.raises(InkwellError) as exc_info:
                await github.write("a.json", b"x")

        assert exc_info.value.error_code == expected.value

    async def test_timeout_is_reported(self, github: GitHubStorageBackend) -> None:
        with aioresponses() as m:
            m.get(f"{API}/a.json?ref=main", exception=asyncio.TimeoutError())

            with pytest.raises(InkwellError) as exc_info:
                await github.exists("a.json")

        assert exc_info.value.error_code == ErrorCode.TIMEOUT.value
        assert exc_info.value.is_storage_unavailable

    async def test_connection_failure_is_reported(self, github: GitHubStorageBackend) -> None:
        with aioresponses() as m:
            m.get(f"{API}/a.json?ref=main", exception=aiohttp.ClientConnectionError("refused"))

            with pytest.raises(InkwellError) as exc_info:
                await github.read("a.json")

        assert exc_info.value.error_code == ErrorCode.CONNECTION_ERROR.value

    async def test_ensure_dir_writes_keep_file(self, github: GitHubStorageBackend) -> None:
        url = f"{API}/content/entries/posts/.gitkeep"
        with aioresponses() as m:
            m.get(f"{url}?ref=main", status=404)
            m.get(f"{url}?ref=main", status=404)
            m.put(url, payload={"content": {"sha": "k"}})

            await github.ensure_dir("content/entries/posts")

            sent = _sent_json(m, "PUT", url)

        assert sent["message"] == "Create directory content/entries/posts"


class TestKeyLocking:
    """Per-key serialization of writes and deletes."""

    @pytest.fixture
    async def github(self) -> AsyncIterator[GitHubStorageBackend]:
        async with aiohttp.ClientSession() as session:
            yield GitHubStorageBackend(session, token="t0ken", repo="octo/site")

    @pytest.fixture
    def in_flight(
        self, github: GitHubStorageBackend, monkeypatch: pytest.MonkeyPatch
    ) -> dict[str, list[int]]:
        """Stub the API, recording the peak number of concurrent requests per key."""
        active: dict[str, int] = {}
        peaks: dict[str, list[int]] = {}

        async def fake_request(
            method: str,
            url: str,
            operation: str,
            key: str,
            payload: dict[str, Any] | None = None,
            allow_not_found: bool = False,
        ) -> Any:
            active[key] = active.get(key, 0) + 1
            peaks.setdefault(key, []).append(active[key])
            await asyncio.sleep(0)
            active[key] -= 1
            if method == "GET":
                return None
            return {"content": {"sha": "sha-new"}}

        monkeypatch.setattr(github, "_request", fake_request)
        return peaks

    async def test_locks_are_released_after_sequential_writes(
        self, github: GitHubStorageBackend, in_flight: dict[str, list[int]]
    ) -> None:
        for i in range(50):
            await github.write(f"uploads/file-{i}.jpg", b"x")

        assert len(in_flight) == 50
        assert github._locks == {}

    async def test_concurrent_writes_to_one_key_are_serialized(
        self, github: GitHubStorageBackend, in_flight: dict[str, list[int]]
    ) -> None:
        await asyncio.gather(
            *(github.write("content/posts/a.json", f"v{i}") for i in range(5)),
            github.write("content/posts/b.json", b"other"),
        )

        assert max(in_flight["content/posts/a.json"]) == 1
        assert len(in_flight["content/posts/a.json"]) == 10
        assert github._locks == {}

    async def test_lock_is_released_when_write_fails(
        self, github: GitHubStorageBackend, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def failing_request(*args: Any, **kwargs: Any) -> Any:
            raise RuntimeError("network down")

        monkeypatch.setattr(github, "_request", failing_request)

        with pytest.raises(RuntimeError):
            await github.write("a.json", b"x")

        assert github._locks == {}
