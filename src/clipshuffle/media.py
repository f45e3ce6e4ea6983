"""Media resources, duration probing, and the moviepy-backed playback source.

A playback source is anything with this async surface (duck-typed, the
pipeline and compositor never check the class):

    await source.open(resource)   # bind a video, metadata ready
    await source.seek(t)          # resolves once frames from t are decodable
    await source.play()           # start producing frames
    await source.read_frame()     # frame at `position`, then advance one tick
    source.position               # current playback time in seconds
    source.size                   # (width, height) of decoded frames
    source.close()                # release the decoder

Every blocking moviepy call runs through asyncio.to_thread so the event
loop keeps servicing the other slots while a file opens or seeks.
"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
from moviepy import VideoFileClip

from .errors import ResourceUnreadable


@dataclass(frozen=True)
class MediaResource:
    """Handle to one input video. Identity is the path."""

    path: Path
    name: str = field(default="", compare=False)

    def __post_init__(self):
        object.__setattr__(self, "path", Path(self.path))
        if not self.name:
            object.__setattr__(self, "name", self.path.name)

    @classmethod
    def from_paths(cls, paths) -> list["MediaResource"]:
        return [cls(Path(p)) for p in paths]


def _moviepy_duration(path: Path) -> float:
    """Probe video duration using moviepy (imageio_ffmpeg ships no ffprobe)."""
    with VideoFileClip(str(path), audio=False) as clip:
        return clip.duration


class DurationProber:
    """Report (and cache) the playable duration of media resources.

    Duration is immutable for a given file, so each resource is probed at
    most once per prober. probe_count counts real probes, not cache hits.
    """

    def __init__(self, probe_fn=None):
        self._probe_fn = probe_fn or _moviepy_duration
        self._cache: dict[MediaResource, float] = {}
        self.probe_count = 0

    async def probe(self, resource: MediaResource) -> float:
        """Return the duration of *resource* in seconds.

        Raises:
            ResourceUnreadable: The file never yields usable metadata.
        """
        if resource in self._cache:
            return self._cache[resource]

        try:
            duration = await asyncio.to_thread(self._probe_fn, resource.path)
        except Exception as exc:
            raise ResourceUnreadable(
                f"Cannot read metadata of {resource.name}: {exc}"
            ) from exc
        self.probe_count += 1

        if duration is None or not duration > 0:
            raise ResourceUnreadable(
                f"Cannot read metadata of {resource.name}: "
                f"no positive duration (got {duration!r})"
            )
        duration = float(duration)
        self._cache[resource] = duration
        return duration


class MoviepySource:
    """Playback source that decodes frames with moviepy.

    Frames are produced at the output fps rather than the file's native
    rate, the same resampling the compositor's recorder expects: every
    read_frame() advances position by exactly 1/fps.
    """

    def __init__(self, fps: float = 30):
        self.fps = fps
        self.resource = None
        self._clip = None
        self._origin = 0.0
        self._ticks = 0

    @property
    def position(self) -> float:
        # Counted in whole frames from the last seek so that long clips
        # do not accumulate float drift.
        return self._origin + self._ticks / self.fps

    @property
    def size(self) -> tuple[int, int]:
        w, h = self._clip.size
        return int(w), int(h)

    async def open(self, resource: MediaResource) -> None:
        self.close()
        self._clip = await asyncio.to_thread(
            VideoFileClip, str(resource.path), audio=False,
        )
        self.resource = resource
        self._origin, self._ticks = 0.0, 0

    async def seek(self, t: float) -> None:
        # Decoding the target frame primes the reader so the first
        # read_frame() after a seek does not stall.
        await asyncio.to_thread(self._clip.get_frame, self._clamp(t))
        self._origin, self._ticks = t, 0

    async def play(self) -> None:
        if self._clip is None:
            raise RuntimeError("play() before open()")
        # Decode the frame at the current position so a clip that cannot
        # produce frames fails here rather than mid-composite.
        await asyncio.to_thread(self._clip.get_frame, self._clamp(self.position))

    async def read_frame(self) -> np.ndarray:
        frame = await asyncio.to_thread(
            self._clip.get_frame, self._clamp(self.position),
        )
        self._ticks += 1
        return frame

    def close(self) -> None:
        if self._clip is not None:
            self._clip.close()
            self._clip = None

    def _clamp(self, t: float) -> float:
        # Past the last decodable frame moviepy warns and repeats it; hold
        # the final frame explicitly instead.
        native_fps = self._clip.fps or self.fps
        last = max(0.0, self._clip.duration - 1.0 / native_fps)
        return min(max(t, 0.0), last)
