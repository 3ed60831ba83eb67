"""Test doubles shared by the Content Repository Service tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from io import BytesIO

from PIL import Image

from services.content_repository_service.models_domain import VideoProbe

class SteppingClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self) -> None:
        self.current = datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


class FakeVideoProcessor:
    """Video collaborator returning canned results."""

    def __init__(
        self,
        probe: VideoProbe | None = None,
        frame: bytes | None = None,
    ) -> None:
        self.probe = probe
        self.frame = frame
        self.frame_requests: list[tuple[float, int]] = []

    async def probe_video(self, content: bytes) -> VideoProbe | None:
        return self.probe

    async def extract_frame(
        self, content: bytes, timestamp_seconds: float, max_width: int
    ) -> bytes | None:
        self.frame_requests.append((timestamp_seconds, max_width))
        return self.frame


class RecordingMetrics:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def record_operation(self, operation, status) -> None:
        self.calls.append((operation.value, status.value))


def make_image_bytes(width: int, height: int, image_format: str = "JPEG") -> bytes:
    mode = "RGBA" if image_format == "PNG" else "RGB"
    buffer = BytesIO()
    Image.new(mode, (width, height), (200, 120, 40)).save(buffer, image_format)
    return buffer.getvalue()

