from __future__ import annotations

import logging
import shutil
import subprocess
from typing import List, Optional

from forge_errors import FrameSinkError

_LOGGER = logging.getLogger(__name__)


class FrameSink:
    """
    Consumer of recorded frames.

    Each frame is ``width * height * 3`` bytes of RGB, rows top to bottom.
    A sink that fails turns into a no-op instead of raising.
    """

    def __init__(self, width: int, height: int, fps: int) -> None:
        self.width = int(width)
        self.height = int(height)
        self.fps = int(fps)
        self.frames_written = 0
        self.closed = False

    @property
    def frame_size(self) -> int:
        return self.width * self.height * 3

    def write_frame(self, data: bytes) -> bool:
        if self.closed:
            return False
        if len(data) != self.frame_size:
            _LOGGER.warning(
                "Dropping frame of %d bytes, expected %d", len(data), self.frame_size
            )
            return False
        if not self._write(data):
            return False
        self.frames_written += 1
        return True

    def _write(self, data: bytes) -> bool:
        return True

    def close(self) -> None:
        self.closed = True


class NullFrameSink(FrameSink):
    """Counts frames and discards them."""


class MemoryFrameSink(FrameSink):
    """Keeps every frame in memory."""

    def __init__(self, width: int, height: int, fps: int) -> None:
        super().__init__(width, height, fps)
        self.frames: List[bytes] = []

    def _write(self, data: bytes) -> bool:
        self.frames.append(bytes(data))
        return True


def ffmpeg_command(width: int, height: int, fps: int, output_path: str, executable: str = "ffmpeg") -> List[str]:
    return [
        executable,
        "-r", str(fps),
        "-f", "rawvideo",
        "-pix_fmt", "rgb24",
        "-s", f"{width}x{height}",
        "-i", "-",
        "-threads", "0",
        "-c:v", "libx264",
        "-preset", "ultrafast",
        "-crf", "23",
        "-pix_fmt", "yuv420p",
        "-y", output_path,
    ]


class FfmpegFrameSink(FrameSink):
    """
    Pipes raw frames into an ``ffmpeg`` process.

    If ffmpeg cannot be started or the pipe breaks, the sink closes itself
    and later frames are ignored. With ``strict=True`` a failed start raises
    :class:`FrameSinkError` instead.
    """

    def __init__(
        self,
        width: int,
        height: int,
        fps: int,
        output_path: str = "output.mp4",
        *,
        executable: str = "ffmpeg",
        strict: bool = False,
    ) -> None:
        super().__init__(width, height, fps)
        self.output_path = output_path
        self._process: Optional[subprocess.Popen] = None

        resolved = shutil.which(executable)
        try:
            if resolved is None:
                raise FrameSinkError(f"{executable} not found on PATH")
            command = ffmpeg_command(self.width, self.height, self.fps, output_path, resolved)
            self._process = subprocess.Popen(
                command,
                stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except (OSError, FrameSinkError) as exc:
            if strict:
                raise FrameSinkError(str(exc)) from exc
            _LOGGER.warning("Video export disabled: %s", exc)
            self.closed = True
            return
        _LOGGER.info("Recording %dx%d@%d to %s", self.width, self.height, self.fps, output_path)

    def _write(self, data: bytes) -> bool:
        if self._process is None or self._process.stdin is None:
            return False
        try:
            self._process.stdin.write(data)
        except (BrokenPipeError, OSError, ValueError) as exc:
            _LOGGER.warning("Video export stopped: %s", exc)
            self.close()
            return False
        return True

    def close(self) -> None:
        if self.closed and self._process is None:
            return
        self.closed = True
        process, self._process = self._process, None
        if process is None:
            return
        try:
            if process.stdin is not None:
                process.stdin.close()
        except OSError as exc:
            _LOGGER.warning("Closing ffmpeg input failed: %s", exc)
        process.wait()
        _LOGGER.info("Saved %d frames to %s", self.frames_written, self.output_path)
