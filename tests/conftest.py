"""Shared test fixtures for clipshuffle tests.

Two kinds of doubles:
  - real synthetic videos generated with the bundled ffmpeg, for the
    moviepy/ffmpeg-backed source, prober and recorder;
  - in-memory FakeSource / ListRecorder, for the planner, pipeline,
    compositor and timeline logic (fast, deterministic, no decoding).
"""

import subprocess
from pathlib import Path

import numpy as np
import pytest
import imageio_ffmpeg

from clipshuffle.media import DurationProber, MediaResource

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()


def make_video(path, color="blue", size="320x240", duration=5, fps=10):
    """Write a solid-color test video (no audio) with ffmpeg."""
    subprocess.run(
        [
            _FFMPEG, "-y",
            "-f", "lavfi", "-i", f"color=c={color}:s={size}:d={duration}:r={fps}",
            "-c:v", "libx264", "-crf", "28", "-pix_fmt", "yuv420p",
            str(path),
        ],
        check=True,
        capture_output=True,
    )
    return Path(path)


@pytest.fixture
def source_video(tmp_path):
    """Create a 5-second test video (320x240, 10fps) using ffmpeg."""
    return make_video(tmp_path / "source.mp4")


@pytest.fixture
def video_dir(tmp_path):
    """Directory with two short videos of different sizes and colors."""
    d = tmp_path / "footage"
    d.mkdir()
    make_video(d / "red.mp4", color="red", size="320x240", duration=4)
    make_video(d / "green.mp4", color="green", size="240x320", duration=3)
    return d


# ── In-memory doubles ──────────────────────────────────────────────

FPS = 10


class FakeLibrary:
    """Catalog of fake videos: name -> (duration, (w, h), rgb color)."""

    def __init__(self, videos: dict, fps=FPS):
        self.videos = videos
        self.fps = fps
        self.fail_open = set()
        self.fail_play = set()
        self.fail_read = {}  # name -> number of good reads before an error
        self.sources = []
        self.events = []
        # (kind, source serial) for open/frame/close, plus anything a test
        # appends (e.g. progress lines), in the order it happened.
        self.trace = []

    def resources(self) -> list[MediaResource]:
        return [MediaResource(Path(name)) for name in self.videos]

    def resource(self, name: str) -> MediaResource:
        return MediaResource(Path(name))

    def prober(self) -> DurationProber:
        return DurationProber(probe_fn=lambda path: self.videos[path.name][0])

    def factory(self):
        def _make():
            source = FakeSource(self, serial=len(self.sources))
            self.sources.append(source)
            return source
        return _make


class FakeSource:
    """Playback source producing solid-color frames at a fixed fps."""

    def __init__(self, library: FakeLibrary, serial=0):
        self.library = library
        self.serial = serial
        self.fps = library.fps
        self.resource = None
        self.closed = False
        self.reads = []
        self._origin = 0.0
        self._ticks = 0

    @property
    def position(self):
        return self._origin + self._ticks / self.fps

    @property
    def size(self):
        return self.library.videos[self.resource.name][1]

    async def open(self, resource):
        if resource.name in self.library.fail_open:
            raise OSError(f"cannot decode {resource.name}")
        self.resource = resource
        self.library.events.append(("open", resource.name))
        self.library.trace.append(("open", self.serial))

    async def seek(self, t):
        self._origin, self._ticks = t, 0
        self.library.events.append(("seek", self.resource.name, t))

    async def play(self):
        if self.resource.name in self.library.fail_play:
            raise RuntimeError("playback refused")

    async def read_frame(self):
        limit = self.library.fail_read.get(self.resource.name)
        if limit is not None and len(self.reads) >= limit:
            raise OSError("corrupt packet")
        w, h = self.size
        color = self.library.videos[self.resource.name][2]
        self.reads.append(self.position)
        self.library.events.append(("frame", self.resource.name))
        self.library.trace.append(("frame", self.serial))
        self._ticks += 1
        return np.full((h, w, 3), color, dtype=np.uint8)

    def close(self):
        self.closed = True
        self.library.trace.append(("close", self.serial))


class ListRecorder:
    """Stream recorder double that keeps every frame in memory."""

    def __init__(self, fps=FPS):
        self.fps = fps
        self.images = []
        self.started = False
        self.start_calls = 0
        self.stopped = False

    @property
    def frames(self):
        return len(self.images)

    @property
    def duration(self):
        return self.frames / self.fps

    def start(self):
        self.started = True
        self.start_calls += 1

    async def write_frame(self, frame):
        # Kept as given: the compositor hands over its own snapshot.
        self.images.append(frame)

    async def hold(self, seconds):
        count = round(seconds * self.fps)
        for _ in range(count):
            self.images.append(self.images[-1])
        return count

    async def stop(self):
        self.started = False
        self.stopped = True
        return {"frames": self.frames}


RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)


@pytest.fixture
def library():
    """Three fake videos: a wide red, a tall green and a 4:3 blue one."""
    return FakeLibrary({
        "red.mp4": (10.0, (160, 90), RED),
        "green.mp4": (8.0, (90, 160), GREEN),
        "blue.mp4": (6.0, (120, 90), BLUE),
    })
