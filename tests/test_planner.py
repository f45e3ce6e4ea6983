"""Tests for the clip planner.

Covers the coverage postcondition (sum of lengths >= target), per-clip
bounds, the no-immediate-repeat rule, single-video pools, the tail
extension, seeded repeatability, and the target <= 0 boundary.
"""

import asyncio
import random

import pytest

from conftest import FakeLibrary
from clipshuffle.common import silent
from clipshuffle.errors import (
    ClipLongerThanSource,
    EmptyResourcePool,
    InvalidRange,
    ResourceUnreadable,
)
from clipshuffle.media import DurationProber
from clipshuffle.planner import (
    TAIL_EXTENSION,
    draw_start,
    effective_length_for,
    pick_resource,
    plan_clips,
)


def _plan(library, target, min_pct=10, max_pct=30, seed=0, **kwargs):
    return asyncio.run(plan_clips(
        library.resources(), target, min_pct, max_pct,
        prober=kwargs.pop("prober", library.prober()),
        rng=random.Random(seed),
        progress=silent,
        **kwargs,
    ))


class TestPlanClips:
    @pytest.mark.parametrize("seed", range(10))
    def test_lengths_cover_target(self, library, seed):
        clips = _plan(library, 30, seed=seed)
        assert sum(c.length for c in clips) >= 30
        # Removing the last clip must drop below the target: the loop
        # stops as soon as the target is covered.
        assert sum(c.length for c in clips[:-1]) < 30

    @pytest.mark.parametrize("seed", range(10))
    def test_clips_stay_inside_source(self, library, seed):
        for clip in _plan(library, 40, seed=seed):
            duration = library.videos[clip.resource.name][0]
            assert clip.start >= 0
            assert clip.length > 0
            assert clip.start + clip.length <= duration + 1e-9
            assert clip.start + clip.effective_length <= duration + 1e-9

    @pytest.mark.parametrize("seed", range(10))
    def test_no_immediate_repeat(self, library, seed):
        clips = _plan(library, 60, seed=seed)
        for a, b in zip(clips, clips[1:]):
            assert a.resource != b.resource

    def test_single_video_pool_repeats(self):
        lib = FakeLibrary({"only.mp4": (5.0, (64, 36), (9, 9, 9))})
        clips = _plan(lib, 10, min_pct=20, max_pct=40)
        assert len(clips) >= 2
        assert all(c.resource.name == "only.mp4" for c in clips)

    def test_lengths_are_percentages_of_source(self, library):
        for clip in _plan(library, 30, min_pct=25, max_pct=50, seed=3):
            duration = library.videos[clip.resource.name][0]
            assert 0.25 * duration <= clip.length <= 0.50 * duration

    def test_fixed_percentage_scenario(self):
        """A:10s, B:8s at exactly 50% gives 5.0s or 4.0s clips."""
        lib = FakeLibrary({
            "a.mp4": (10.0, (64, 36), (1, 1, 1)),
            "b.mp4": (8.0, (64, 36), (2, 2, 2)),
        })
        for seed in range(5):
            clips = _plan(lib, 5, min_pct=50, max_pct=50, seed=seed)
            first = clips[0]
            expected = 0.5 * lib.videos[first.resource.name][0]
            assert first.length == pytest.approx(expected)
            assert sum(c.length for c in clips) >= 5
            if first.resource.name == "a.mp4":
                assert len(clips) == 1

    def test_zero_target_plans_nothing(self, library):
        assert _plan(library, 0) == []

    def test_negative_target_plans_nothing(self, library):
        assert _plan(library, -3) == []

    def test_same_seed_same_plan(self, library):
        assert _plan(library, 30, seed=42) == _plan(library, 30, seed=42)

    def test_different_seed_different_plan(self, library):
        assert _plan(library, 30, seed=1) != _plan(library, 30, seed=2)

    def test_durations_probed_once_per_video(self, library):
        prober = library.prober()
        _plan(library, 60, prober=prober)
        assert prober.probe_count <= len(library.videos)

    def test_tail_extension_when_room(self, library):
        clips = _plan(library, 40, seed=5)
        for clip in clips:
            duration = library.videos[clip.resource.name][0]
            if clip.start + clip.length + TAIL_EXTENSION <= duration:
                assert clip.effective_length == pytest.approx(
                    clip.length + TAIL_EXTENSION
                )
                assert clip.extended
            else:
                assert clip.effective_length == clip.length

    def test_no_extension_when_disabled(self, library):
        for clip in _plan(library, 30, extend_tail=False):
            assert clip.effective_length == clip.length
            assert not clip.extended

    def test_empty_pool_raises(self):
        with pytest.raises(EmptyResourcePool):
            asyncio.run(plan_clips(
                [], 10, 10, 30, prober=DurationProber(lambda p: 1.0),
                progress=silent,
            ))

    def test_inverted_range_raises(self, library):
        with pytest.raises(InvalidRange, match="min"):
            _plan(library, 10, min_pct=60, max_pct=20)

    def test_range_above_100_raises(self, library):
        with pytest.raises(InvalidRange):
            _plan(library, 10, min_pct=50, max_pct=150)

    def test_zero_pct_raises(self, library):
        with pytest.raises(InvalidRange):
            _plan(library, 10, min_pct=0, max_pct=20)

    def test_unreadable_video_propagates(self, library):
        def broken(path):
            raise OSError("moov atom not found")

        with pytest.raises(ResourceUnreadable, match="moov atom"):
            _plan(library, 10, prober=DurationProber(broken))

    def test_reports_each_clip(self, library):
        lines = []
        clips = asyncio.run(plan_clips(
            library.resources(), 20, 10, 30,
            prober=library.prober(), rng=random.Random(0),
            progress=lines.append,
        ))
        added = [line for line in lines if line.startswith("Added clip from")]
        assert len(added) == len(clips)


class TestPickResource:
    def test_avoids_previous(self, library):
        pool = library.resources()
        rng = random.Random(0)
        for _ in range(50):
            assert pick_resource(pool, pool[0], rng) != pool[0]

    def test_duplicate_entries_of_one_video_accept_repeats(self, library):
        only = library.resource("red.mp4")
        assert pick_resource([only, only], only, random.Random(0)) == only

    def test_empty_pool_raises(self):
        with pytest.raises(EmptyResourcePool):
            pick_resource([], None, random.Random(0))


class TestDrawStart:
    def test_start_leaves_room_for_length(self):
        rng = random.Random(0)
        for _ in range(100):
            start = draw_start(10.0, 4.0, rng)
            assert 0 <= start <= 6.0

    def test_full_length_clip_starts_at_zero(self):
        assert draw_start(5.0, 5.0, random.Random(0)) == 0.0

    def test_longer_than_source_raises(self):
        with pytest.raises(ClipLongerThanSource):
            draw_start(5.0, 5.5, random.Random(0))


class TestEffectiveLength:
    def test_extends_when_room(self):
        assert effective_length_for(10.0, 2.0, 3.0) == 4.0

    def test_exact_fit_extends(self):
        assert effective_length_for(10.0, 6.0, 3.0) == 4.0

    def test_no_room_keeps_length(self):
        assert effective_length_for(10.0, 6.5, 3.0) == 3.0
