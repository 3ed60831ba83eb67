"""ffprobe/ffmpeg based video probing and poster frame extraction."""

from __future__ import annotations

import asyncio
import json
import shutil
from pathlib import Path

import aiofiles
import aiofiles.tempfile
from inkwell_service_libs.error_handling import raise_processing_error
from inkwell_service_libs.logging_utils import create_service_logger

from services.content_repository_service.models_domain import VideoProbe
from services.content_repository_service.protocols import VideoProcessorProtocol

logger = create_service_logger("content_repository.media.ffmpeg")

SERVICE = "content_repository_service"


class FfmpegVideoProcessor(VideoProcessorProtocol):
    """
    Video collaborator shelling out to ffprobe and ffmpeg.

    When a binary cannot be found on PATH the matching operation returns
    None so uploads can continue without the derived data.
    """

    def __init__(
        self,
        ffmpeg_binary: str = "ffmpeg",
        ffprobe_binary: str = "ffprobe",
        timeout_seconds: float = 60.0,
    ) -> None:
        self.ffmpeg_binary = ffmpeg_binary
        self.ffprobe_binary = ffprobe_binary
        self.timeout_seconds = timeout_seconds

    async def _run(self, args: list[str], operation: str) -> bytes:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise_processing_error(
                service=SERVICE,
                operation=operation,
                message=f"{Path(args[0]).name} timed out after {self.timeout_seconds}s",
            )
        if process.returncode != 0:
            raise_processing_error(
                service=SERVICE,
                operation=operation,
                message=f"{Path(args[0]).name} exited with {process.returncode}",
                stderr=stderr.decode("utf-8", "replace")[-500:],
            )
        return stdout

    async def probe_video(self, content: bytes) -> VideoProbe | None:
        ffprobe = shutil.which(self.ffprobe_binary)
        if ffprobe is None:
            logger.warning("ffprobe not available, skipping video probe")
            return None

        async with aiofiles.tempfile.TemporaryDirectory() as tmp_dir:
            source = Path(tmp_dir) / "source"
            async with aiofiles.open(source, "wb") as f:
                await f.write(content)
            output = await self._run(
                [
                    ffprobe,
                    "-v",
                    "error",
                    "-select_streams",
                    "v:0",
                    "-show_entries",
                    "stream=width,height:format=duration",
                    "-of",
                    "json",
                    str(source),
                ],
                "probe_video",
            )

        try:
            info = json.loads(output)
            stream = info["streams"][0]
            duration = info.get("format", {}).get("duration")
            return VideoProbe(
                width=int(stream["width"]),
                height=int(stream["height"]),
                duration=float(duration) if duration is not None else None,
            )
        except (ValueError, KeyError, IndexError) as e:
            raise_processing_error(
                service=SERVICE,
                operation="probe_video",
                message=f"Unexpected ffprobe output: {e}",
            )

    async def extract_frame(
        self, content: bytes, timestamp_seconds: float, max_width: int
    ) -> bytes | None:
        ffmpeg = shutil.which(self.ffmpeg_binary)
        if ffmpeg is None:
            logger.warning("ffmpeg not available, skipping poster extraction")
            return None

        async with aiofiles.tempfile.TemporaryDirectory() as tmp_dir:
            source = Path(tmp_dir) / "source"
            poster = Path(tmp_dir) / "poster.jpg"
            async with aiofiles.open(source, "wb") as f:
                await f.write(content)
            await self._run(
                [
                    ffmpeg,
                    "-y",
                    "-ss",
                    f"{timestamp_seconds:.3f}",
                    "-i",
                    str(source),
                    "-frames:v",
                    "1",
                    # Even height keeps encoders happy
                    "-vf",
                    f"scale='min({max_width},iw)':-2",
                    "-q:v",
                    "3",
                    str(poster),
                ],
                "extract_frame",
            )
            try:
                async with aiofiles.open(poster, "rb") as f:
                    frame = await f.read()
            except FileNotFoundError:
                frame = b""

        if not frame:
            # ffmpeg exits 0 when the seek lands past the last frame
            raise_processing_error(
                service=SERVICE,
                operation="extract_frame",
                message=f"ffmpeg wrote no frame at {timestamp_seconds:.3f}s",
            )
        return frame
