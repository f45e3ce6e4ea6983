"""Timeline controller — drives planner, preload pipeline and compositor.

States, in order:

  PLANNING    plan the clip queue (planner errors end the run)
  WARMING_UP  prime up to N slots from the queue head; an empty queue
              goes straight to STOPPED without starting the recorder
  RUNNING     composite the current slot while preparing the following
              one, then advance round-robin
  DRAINING    optionally hold the last frame, then stop the recorder
  STOPPED     every slot binding released (also after a failure)

Look-ahead: while slot k composites, slot k+1 is prepared from the queue
head, but only if k+1 no longer holds an unplayed clip. Right after
warm-up every slot is full, so refills start once the first slots have
been consumed and then run one clip ahead of playback.

Overlap: the slot played just before is drawn underneath the first
seconds of the next clip. That needs at least three slots: with two,
the previous slot is the one being refilled; with one it is the current
slot itself. Smaller pools play with no overlap layer.

Everything runs on one event loop. A failure at any suspension point
aborts the run; the recorder is closed with whatever it holds and the
error propagates.
"""

import asyncio
import enum
import random
from collections import deque
from dataclasses import dataclass

from .common import report
from .compositor import composite
from .media import DurationProber
from .pipeline import PlaybackSlot, PreloadPipeline
from .planner import plan_clips
from .settings import RunSettings, StopPolicy
from .surface import Surface


class RunState(enum.Enum):
    PLANNING = "planning"
    WARMING_UP = "warming_up"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


@dataclass
class RunResult:
    state: RunState
    clips_played: int = 0
    frames: int = 0
    duration: float = 0.0
    output: object = None


class TimelineController:
    """One montage run from planning to a closed recording.

    Args:
        pool: Input MediaResources.
        settings: Validated RunSettings.
        recorder: Stream recorder (start/write_frame/hold/stop/duration).
        source_factory: Zero-argument callable returning a playback source.
        prober: Duration prober; a moviepy-backed one by default.
        rng: Random source shared by planning and zoom; seeded from
            settings.seed when not given.
        progress: Callable receiving progress lines.
    """

    def __init__(
        self,
        pool,
        settings: RunSettings,
        recorder,
        source_factory,
        prober: DurationProber | None = None,
        rng: random.Random | None = None,
        progress=report,
    ):
        self.pool = list(pool)
        self.settings = settings
        self.recorder = recorder
        self.prober = prober or DurationProber()
        self.rng = rng or random.Random(settings.seed)
        self.progress = progress
        self.surface = Surface(settings.width, settings.height, settings.background)
        self.pipeline = PreloadPipeline(source_factory, settings.slots, progress)

        self.state = RunState.PLANNING
        self.queue: deque = deque()
        self.previous: PlaybackSlot | None = None
        self.clips_played = 0
        self.planned_played = 0.0

    # ── Stop conditions ───────────────────────────────────────────

    def _time_reached(self) -> bool:
        return (
            self.settings.stop_policy is StopPolicy.TIME
            and self.recorder.duration >= self.settings.target_duration
        )

    def _planned_reached(self) -> bool:
        return (
            self.settings.stop_policy is StopPolicy.PLANNED
            and self.planned_played >= self.settings.target_duration
        )

    def _done(self) -> bool:
        return self._time_reached() or self._planned_reached()

    # ── Slot selection ────────────────────────────────────────────

    def _overlap_slot(self, slot: PlaybackSlot) -> PlaybackSlot | None:
        if len(self.pipeline) < 3 or self.previous is None:
            return None
        if self.previous is slot or self.previous.source is None:
            return None
        return self.previous

    def _refill_target(
        self, index: int, overlap: PlaybackSlot | None,
    ) -> PlaybackSlot | None:
        """Slot to prepare while slot *index* composites, if any."""
        if len(self.pipeline) < 2 or not self.queue:
            return None
        target = self.pipeline.following(index)
        if target.ready or target is overlap:
            return None
        return target

    async def _advance(self, index: int) -> int | None:
        """Pick the slot to play after *index*; None when the run is over."""
        nxt = self.pipeline.following(index)
        if nxt.ready:
            return nxt.index
        if self.queue:
            await self.pipeline.prepare(nxt, self.queue.popleft())
            return nxt.index
        if self.settings.stop_policy is StopPolicy.TIME:
            # Plan exhausted before the recording is long enough: replay.
            replay = self.pipeline.next_index(index)
            slot = self.pipeline.slots[replay]
            self.progress(f"Replaying {slot.clip.describe()} in slot {replay}")
            await self.pipeline.prepare(slot, slot.clip)
            return replay
        return None

    # ── Run ───────────────────────────────────────────────────────

    async def run(self) -> RunResult:
        try:
            clips = await plan_clips(
                self.pool,
                self.settings.target_duration,
                self.settings.min_clip_pct,
                self.settings.max_clip_pct,
                prober=self.prober,
                rng=self.rng,
                extend_tail=self.settings.extend_tail,
                progress=self.progress,
            )
            self.queue = deque(clips)

            self.state = RunState.WARMING_UP
            if not self.queue:
                self.progress("No clips to process.")
                self.state = RunState.STOPPED
                return RunResult(RunState.STOPPED)
            await self.pipeline.warm_up(self.queue)

            self.state = RunState.RUNNING
            self.recorder.start()
            self.progress("Recording started.")
            await self._play_all()

            self.state = RunState.DRAINING
            if self.settings.drain_delay > 0:
                await self.recorder.hold(self.settings.drain_delay)
            output = await self.recorder.stop()
            self.progress("Recording stopped.")
            self.state = RunState.STOPPED
            return RunResult(
                RunState.STOPPED,
                clips_played=self.clips_played,
                frames=self.recorder.frames,
                duration=self.recorder.duration,
                output=output,
            )
        except Exception as exc:
            self.progress(f"Error: {exc}")
            if self.recorder.started:
                await self.recorder.stop()
                self.progress("Recording aborted, partial output is not usable.")
            raise
        finally:
            self.pipeline.release_all()
            self.state = RunState.STOPPED

    async def _play_all(self) -> None:
        index = 0
        while index is not None and not self._done():
            slot = self.pipeline.slots[index]
            self.progress(f"Playing {slot.clip.describe()} from slot {index}")

            overlap = self._overlap_slot(slot)
            play = asyncio.create_task(composite(
                slot,
                self.surface,
                self.recorder,
                self.settings.zoom,
                previous=overlap,
                overlap=self.settings.overlap,
                overlap_mix=self.settings.overlap_mix,
                reserve_overlap=self.settings.reserve_overlap,
                rng=self.rng,
                stop_when=self._time_reached,
                progress=self.progress,
            ))
            try:
                target = self._refill_target(index, overlap)
                if target is not None:
                    await self.pipeline.prepare(target, self.queue.popleft())
                await play
            except BaseException:
                play.cancel()
                await asyncio.gather(play, return_exceptions=True)
                raise

            self.clips_played += 1
            self.planned_played += slot.clip.length
            self.previous = slot
            if self._done():
                break
            index = await self._advance(index)
