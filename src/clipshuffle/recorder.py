"""Stream recorder — encodes composited frames into one mp4 with ffmpeg.

Frames are piped to imageio_ffmpeg's bundled ffmpeg as they are drawn,
so memory stays flat no matter how long the montage runs.

Format negotiation is the one error recovered locally: the preferred
codec/bitrate (H.264 at 8 Mbps) is checked against the encoders the
ffmpeg binary actually ships, and an unavailable codec degrades to
ffmpeg's always-present mpeg4 encoder with default rate control.
"""

import asyncio
import functools
import subprocess
from dataclasses import dataclass
from pathlib import Path

import imageio_ffmpeg
import numpy as np

from .common import report

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()

PREFERRED_CODEC = "libx264"
PREFERRED_BITRATE = 8_000_000
FALLBACK_CODEC = "mpeg4"


@functools.lru_cache(maxsize=1)
def available_encoders() -> frozenset[str]:
    """Names of the video encoders compiled into the bundled ffmpeg."""
    result = subprocess.run(
        [_FFMPEG, "-hide_banner", "-encoders"],
        capture_output=True, text=True, check=True,
    )
    names = set()
    for line in result.stdout.splitlines():
        parts = line.split()
        # Encoder rows look like " V....D libx264   libx264 H.264 ..."
        if len(parts) >= 2 and len(parts[0]) == 6 and parts[0][0] == "V":
            names.add(parts[1])
    return frozenset(names)


def negotiate_codec(
    codec: str, bitrate: int | None, encoders=None, progress=report,
) -> tuple[str, int | None]:
    """Return (codec, bitrate) to use, falling back when *codec* is missing."""
    encoders = available_encoders() if encoders is None else encoders
    if codec in encoders:
        return codec, bitrate
    progress(
        f"{codec} configuration not supported, using default settings."
    )
    return FALLBACK_CODEC, None


@dataclass(frozen=True)
class RecordingResult:
    path: Path
    codec: str
    container: str
    frames: int
    fps: float

    @property
    def duration(self) -> float:
        return self.frames / self.fps


class FfmpegRecorder:
    """Accumulate frames of a fixed size into an mp4 file.

    Args:
        path: Output file. Parent directories are created on start().
        size: (width, height) of every frame.
        fps: Output frame rate.
        codec: Preferred ffmpeg encoder name.
        bitrate: Preferred video bitrate in bits/s (None = encoder default).
        encoders: Override the encoder list (tests); None probes ffmpeg.
        progress: Callable receiving progress lines.
    """

    def __init__(
        self,
        path: str | Path,
        size: tuple[int, int],
        fps: float = 30,
        codec: str = PREFERRED_CODEC,
        bitrate: int | None = PREFERRED_BITRATE,
        encoders=None,
        progress=report,
    ):
        self.path = Path(path)
        self.size = size
        self.fps = fps
        self.codec = codec
        self.bitrate = bitrate
        self.frames = 0
        self._encoders = encoders
        self._progress = progress
        self._writer = None
        self._last = None

    @property
    def started(self) -> bool:
        return self._writer is not None

    @property
    def duration(self) -> float:
        """Seconds of video recorded so far."""
        return self.frames / self.fps

    def start(self) -> None:
        if self.started:
            raise RuntimeError("Recorder already started")
        self.codec, self.bitrate = negotiate_codec(
            self.codec, self.bitrate, self._encoders, self._progress,
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Rate control: explicit bitrate when negotiated, else ffmpeg's
        # quality scale.
        output_params = ["-b:v", str(self.bitrate)] if self.bitrate else None
        self._writer = imageio_ffmpeg.write_frames(
            str(self.path),
            self.size,
            fps=self.fps,
            codec=self.codec,
            quality=None if self.bitrate else 5,
            output_params=output_params,
            macro_block_size=2,
            ffmpeg_log_level="error",
        )
        self._writer.send(None)  # prime the generator, launches ffmpeg

    async def write_frame(self, frame: np.ndarray) -> None:
        """Pipe one frame to ffmpeg.

        The caller must not modify *frame* afterwards; it is kept as the
        frame hold() repeats.
        """
        if not self.started:
            raise RuntimeError("write_frame() before start()")
        # The pipe write blocks while ffmpeg is busy encoding.
        await asyncio.to_thread(self._writer.send, np.ascontiguousarray(frame))
        self._last = frame
        self.frames += 1

    async def hold(self, seconds: float) -> int:
        """Repeat the last frame for *seconds*. Returns frames added."""
        if self._last is None or seconds <= 0:
            return 0
        count = round(seconds * self.fps)
        for _ in range(count):
            await self.write_frame(self._last)
        return count

    async def stop(self) -> RecordingResult:
        """Flush and close the encoder; waits for ffmpeg to finish."""
        if not self.started:
            raise RuntimeError("stop() before start()")
        writer, self._writer = self._writer, None
        await asyncio.to_thread(writer.close)
        return RecordingResult(
            self.path, self.codec, self.path.suffix.lstrip(".") or "mp4",
            self.frames, self.fps,
        )
