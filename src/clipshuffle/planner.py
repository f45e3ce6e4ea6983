"""Clip planner — random sub-clip selection covering a target duration.

Builds the ordered queue of clips a montage run plays. Each clip is a
random slice of a random pool member:

  1. Pick a video uniformly at random. With more than one video in the
     pool, resample until the pick differs from the previous clip's
     video (no immediate repeats). A single-video pool repeats freely.
  2. Probe its duration d (cached by the prober).
  3. length ~ uniform(min_pct% * d, max_pct% * d).
  4. start ~ uniform(0, d - length).
  5. Optionally extend the clip by one second of tail (effective_length)
     when the source has that much footage left after the clip. The
     compositor uses the tail for the next clip's overlap window.

Clips are appended while the summed *length* (not effective_length) is
below the target, so the last clip may overshoot. A target <= 0 plans
nothing.
"""

import random
from dataclasses import dataclass

from .common import check_pct_range, report
from .errors import ClipLongerThanSource, EmptyResourcePool
from .media import DurationProber, MediaResource


TAIL_EXTENSION = 1.0  # seconds of slack appended for the overlap window


@dataclass(frozen=True)
class ClipDescriptor:
    """One planned clip: a time slice of one input video."""

    resource: MediaResource
    start: float
    length: float
    effective_length: float

    @property
    def end(self) -> float:
        """Source time at which playback of this clip stops."""
        return self.start + self.effective_length

    @property
    def extended(self) -> bool:
        return self.effective_length > self.length

    def describe(self) -> str:
        return (
            f"{self.resource.name} (start: {self.start:.2f}s, "
            f"length: {self.length:.2f}s)"
        )


def pick_resource(
    pool: list[MediaResource],
    previous: MediaResource | None,
    rng: random.Random,
) -> MediaResource:
    """Pick a pool member uniformly, never repeating *previous* if avoidable."""
    if not pool:
        raise EmptyResourcePool("No input videos to pick clips from")
    candidate = rng.choice(pool)
    if len(set(pool)) > 1:
        while candidate == previous:
            candidate = rng.choice(pool)
    return candidate


def draw_length(
    duration: float, min_pct: float, max_pct: float, rng: random.Random,
) -> float:
    """Draw a clip length between min_pct% and max_pct% of *duration*."""
    low = min_pct / 100 * duration
    high = max_pct / 100 * duration
    return rng.uniform(low, high)


def draw_start(duration: float, length: float, rng: random.Random) -> float:
    """Draw a start offset so that [start, start + length] fits the source.

    Raises:
        ClipLongerThanSource: length exceeds the source duration.
    """
    if length > duration:
        raise ClipLongerThanSource(
            f"Clip length {length:.2f}s exceeds source duration {duration:.2f}s"
        )
    return rng.uniform(0, duration - length)


def effective_length_for(
    duration: float, start: float, length: float, extend_tail: bool = True,
) -> float:
    """Return length plus TAIL_EXTENSION when the source has room for it."""
    if extend_tail and start + length + TAIL_EXTENSION <= duration:
        return length + TAIL_EXTENSION
    return length


async def plan_clips(
    pool: list[MediaResource],
    target_duration: float,
    min_pct: float,
    max_pct: float,
    *,
    prober: DurationProber,
    rng: random.Random | None = None,
    extend_tail: bool = True,
    progress=report,
) -> list[ClipDescriptor]:
    """Plan a randomized queue of clips whose lengths sum to >= target.

    Args:
        pool: Input videos to draw from (non-empty).
        target_duration: Seconds of footage to cover. <= 0 plans nothing.
        min_pct: Minimum clip length as a percentage of its source (0, 100].
        max_pct: Maximum clip length as a percentage of its source (0, 100].
        prober: Duration prober (caches per resource).
        rng: Random source. Inject a seeded random.Random for repeatable
            plans; defaults to a fresh unseeded generator.
        extend_tail: Add up to one second of overlap tail to each clip.
        progress: Callable receiving one progress line per planned clip.

    Returns:
        Ordered list of ClipDescriptor.

    Raises:
        EmptyResourcePool: pool is empty.
        InvalidRange: min_pct/max_pct inverted or outside (0, 100].
        ResourceUnreadable: a chosen video's duration cannot be probed.
    """
    if not pool:
        raise EmptyResourcePool("No input videos to pick clips from")
    check_pct_range("clip length %", min_pct, max_pct)
    rng = rng or random.Random()

    progress("Building clip configurations...")
    clips = []
    total = 0.0
    previous = None
    while total < target_duration:
        resource = pick_resource(pool, previous, rng)
        duration = await prober.probe(resource)
        length = draw_length(duration, min_pct, max_pct, rng)
        start = draw_start(duration, length, rng)
        effective = effective_length_for(duration, start, length, extend_tail)

        clips.append(ClipDescriptor(resource, start, length, effective))
        total += length
        previous = resource
        progress(
            f"Added clip from {resource.name}: start={start:.2f}s, "
            f"length={length:.2f}s. Total duration: {total:.2f}s"
        )
    return clips
