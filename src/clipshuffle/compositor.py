"""Compositor — draws one prepared slot onto the output surface, frame by frame.

One call plays one clip. Setup happens once per clip:
  - base crop from the source size and the output aspect (framing.base_crop)
  - zoom decision and zoom crop (framing.plan_zoom), never re-drawn per frame

Then, for every frame the source produces, in increasing position order:
  1. Clear the surface.
  2. Inside the overlap window (the first `overlap` seconds of the clip)
     and with a previous slot available: draw the previous clip's current
     frame stretched over the whole surface, uncropped.
  3. Draw the current frame through the zoom crop (or the base crop).
     Inside the overlap window it is mixed over the previous layer at
     `overlap_mix` opacity, giving a double exposure rather than a fade.
  4. Hand a snapshot of the surface to the recorder.
  5. Stop once the playback position reaches the end threshold, otherwise
     yield to the event loop and take the next frame.

End threshold: clip.end, or with reserve_overlap the tail extension the
planner added (up to `overlap` seconds) is left unplayed so that the
next clip's overlap window shows footage that still exists.
"""

import asyncio
import random

from .common import report
from .errors import PlaybackFailed
from .framing import ZoomConfig, ZoomPlan, base_crop
from .pipeline import PlaybackSlot
from .surface import Surface


DEFAULT_OVERLAP = 1.0   # seconds of double exposure at the start of each clip
DEFAULT_OVERLAP_MIX = 0.5
POSITION_EPSILON = 1e-6  # float slack when comparing playback positions


def end_threshold(clip, overlap: float, reserve_overlap: bool) -> float:
    """Source time at which compositing of *clip* completes."""
    if not reserve_overlap:
        return clip.end
    reserve = min(overlap, clip.effective_length - clip.length)
    return clip.end - max(reserve, 0.0)


def plan_geometry(
    slot: PlaybackSlot,
    surface: Surface,
    zoom: ZoomConfig,
    rng: random.Random,
) -> ZoomPlan:
    """Compute the crop for this clip: base aspect crop plus optional zoom."""
    src_w, src_h = slot.source.size
    base = base_crop(src_w, src_h, surface.width, surface.height)
    return zoom.plan(base, rng)


async def _read_frame(slot: PlaybackSlot):
    source = slot.source
    try:
        return await source.read_frame()
    except Exception as exc:
        raise PlaybackFailed(
            f"Cannot decode {slot.clip.resource.name} at "
            f"{source.position:.2f}s in slot {slot.index}: {exc}"
        ) from exc


async def composite(
    slot: PlaybackSlot,
    surface: Surface,
    recorder,
    zoom: ZoomConfig,
    *,
    previous: PlaybackSlot | None = None,
    overlap: float = DEFAULT_OVERLAP,
    overlap_mix: float = DEFAULT_OVERLAP_MIX,
    reserve_overlap: bool = False,
    rng: random.Random | None = None,
    stop_when=None,
    progress=report,
) -> int:
    """Play *slot*'s clip onto *surface*, feeding every frame to *recorder*.

    Args:
        slot: A ready slot (prepared by the preload pipeline).
        surface: Output surface; only the compositor draws on it.
        recorder: Anything with an async write_frame(np.ndarray).
        zoom: Run zoom settings.
        previous: Slot of the clip that played before this one, drawn
            underneath during the overlap window. None disables overlap.
        overlap: Overlap window length in seconds (>= 0).
        overlap_mix: Opacity of the current clip inside the window.
        reserve_overlap: Stop before the clip's tail extension.
        rng: Random source for the zoom decision.
        stop_when: Optional zero-argument callable checked after each
            frame; when it returns True the clip stops early.
        progress: Callable receiving progress lines.

    Returns:
        Number of frames written.

    Raises:
        PlaybackFailed: The slot is not ready, its source cannot start, or
            a frame of the current or previous clip cannot be decoded.
    """
    clip = slot.clip
    if clip is None or not slot.ready:
        raise PlaybackFailed(f"Slot {slot.index} has no prepared clip")
    rng = rng or random.Random()

    try:
        await slot.source.play()
    except Exception as exc:
        progress(f"Error playing clip from file {clip.resource.name}: {exc}")
        raise PlaybackFailed(
            f"Cannot start playback of {clip.resource.name}: {exc}"
        ) from exc

    plan = plan_geometry(slot, surface, zoom, rng)
    if plan.apply_zoom:
        progress(
            f"Applied zoom on {clip.resource.name}: {plan.factor * 100:.0f}% "
            f"(crop at x:{int(plan.crop.x)}, y:{int(plan.crop.y)})"
        )

    source = slot.source
    threshold = end_threshold(clip, overlap, reserve_overlap)
    overlap_end = clip.start + overlap
    frames = 0

    while True:
        surface.clear()

        in_overlap = (
            previous is not None
            and source.position < overlap_end - POSITION_EPSILON
        )
        if in_overlap:
            surface.draw(await _read_frame(previous))

        frame = await _read_frame(slot)
        surface.draw(frame, plan.crop, opacity=overlap_mix if in_overlap else 1.0)
        await recorder.write_frame(surface.snapshot())
        frames += 1

        if source.position >= threshold - POSITION_EPSILON:
            break
        if stop_when is not None and stop_when():
            break
        await asyncio.sleep(0)

    slot.ready = False
    return frames
