"""Preload pipeline — a fixed pool of playback slots primed ahead of use.

The pool is allocated once per run and reused round-robin: while slot k
is compositing, the timeline prepares slot k+1 (mod N) so that the next
clip is already seeked and decodable when slot k finishes. Larger pools
smooth out slow opens at the cost of more open decoders.

Preparing a slot:
  1. Release whatever the slot was bound to.
  2. Bind the clip's video to a fresh source (open, metadata ready).
  3. Seek to the clip start and wait until frames are decodable there.
  4. Mark the slot ready and record the clip on it.

Any open/seek failure raises SeekFailed. It is not retried: a corrupt or
unsupported file will not become readable on a second attempt.
"""

from collections import deque
from dataclasses import dataclass

from .common import report
from .errors import SeekFailed
from .planner import ClipDescriptor


DEFAULT_POOL_SIZE = 4


@dataclass
class PlaybackSlot:
    """One pooled playback context."""

    index: int
    source: object = None
    clip: ClipDescriptor | None = None
    ready: bool = False

    @property
    def empty(self) -> bool:
        return self.clip is None

    def release(self) -> None:
        if self.source is not None:
            self.source.close()
        self.source = None
        self.clip = None
        self.ready = False


class PreloadPipeline:
    """Owns the slot pool and primes slots with upcoming clips.

    Args:
        source_factory: Zero-argument callable returning a new, unbound
            playback source (see media.py for the interface).
        pool_size: Number of slots (>= 1).
        progress: Callable receiving progress lines.
    """

    def __init__(self, source_factory, pool_size: int = DEFAULT_POOL_SIZE,
                 progress=report):
        if pool_size < 1:
            raise ValueError(f"pool_size must be >= 1, got {pool_size}")
        self._source_factory = source_factory
        self._progress = progress
        self.slots = [PlaybackSlot(i) for i in range(pool_size)]

    def __len__(self):
        return len(self.slots)

    async def prepare(self, slot: PlaybackSlot, clip: ClipDescriptor) -> PlaybackSlot:
        """Bind *clip* to *slot* and wait until it can play from clip.start."""
        slot.release()
        self._progress(f"Preloading clip from {clip.describe()} into slot {slot.index}")

        source = self._source_factory()
        try:
            await source.open(clip.resource)
            await source.seek(clip.start)
        except Exception as exc:
            source.close()
            raise SeekFailed(
                f"Cannot seek {clip.resource.name} to {clip.start:.2f}s "
                f"in slot {slot.index}: {exc}"
            ) from exc

        slot.source = source
        slot.clip = clip
        slot.ready = True
        return slot

    async def warm_up(self, queue: deque) -> int:
        """Fill slots in order from the queue head. Returns slots filled.

        With fewer queued clips than slots, the remaining slots stay
        empty and next_index() skips them.
        """
        filled = 0
        for slot in self.slots:
            if not queue:
                break
            await self.prepare(slot, queue.popleft())
            filled += 1
        return filled

    def following(self, index: int) -> PlaybackSlot:
        """Slot after *index* in round-robin order, empty or not."""
        return self.slots[(index + 1) % len(self.slots)]

    def next_index(self, index: int) -> int | None:
        """Index of the next non-empty slot after *index*, or None."""
        n = len(self.slots)
        for step in range(1, n + 1):
            candidate = (index + step) % n
            if not self.slots[candidate].empty:
                return candidate
        return None

    def release_all(self) -> None:
        for slot in self.slots:
            slot.release()
