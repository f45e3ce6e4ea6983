"""CLI for a dry-run plan — print the clip queue without rendering.

Probes every chosen input and prints the planned clips in play order.
With --seed the same inputs give the same plan, so a plan can be
previewed and then rendered with identical choices (the zoom draws
happen during rendering and are not shown here).

Usage:
    clipshuffle plan footage/ --duration 60 --seed 7
    clipshuffle plan --manifest run.yaml
"""

import argparse
import asyncio
import random
import sys

from .common import silent
from .errors import ClipShuffleError
from .media import DurationProber, MediaResource
from .planner import plan_clips
from .render_cli import add_run_arguments, gather_run_config


def format_plan(clips) -> str:
    """Render the planned queue as an aligned text table."""
    lines = [f"  {'#':>3}  {'start':>8}  {'length':>8}  {'tail':>5}  source"]
    total = 0.0
    for i, clip in enumerate(clips):
        tail = "+1s" if clip.extended else ""
        lines.append(
            f"  {i:>3}  {clip.start:>7.2f}s  {clip.length:>7.2f}s  {tail:>5}  "
            f"{clip.resource.name}"
        )
        total += clip.length
    lines.append(f"  {len(clips)} clips, {total:.2f}s planned")
    return "\n".join(lines)


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Plan a random montage and print the clip queue.",
    )
    add_run_arguments(parser)
    args = parser.parse_args(args)

    try:
        inputs, settings = gather_run_config(args)
    except (ValueError, FileNotFoundError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    try:
        clips = asyncio.run(plan_clips(
            MediaResource.from_paths(inputs),
            settings.target_duration,
            settings.min_clip_pct,
            settings.max_clip_pct,
            prober=DurationProber(),
            rng=random.Random(settings.seed),
            extend_tail=settings.extend_tail,
            progress=silent,
        ))
    except ClipShuffleError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"Plan for {settings.target_duration:g}s from {len(inputs)} input(s):")
    print(format_plan(clips))


if __name__ == "__main__":
    main()
