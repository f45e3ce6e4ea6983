"""CLI for montage rendering.

Reads inputs and settings from a YAML run manifest and/or the command
line (CLI flags override the manifest), plans random clips, composites
them and writes one mp4.

Usage:
    # Everything on the command line
    clipshuffle render footage/ extra.mp4 --duration 30 --output montage.mp4

    # From a run manifest, overriding the seed
    clipshuffle render --manifest run.yaml --output montage.mp4 --seed 7

    # Validate only (no rendering)
    clipshuffle render --manifest run.yaml --validate
"""

import argparse
import asyncio
import sys
import time

from .common import report, silent
from .errors import ClipShuffleError
from .media import DurationProber, MediaResource, MoviepySource
from .recorder import FfmpegRecorder
from .run_manifest import build_settings, load_run_manifest, resolve_inputs
from .settings import RunSettings, StopPolicy
from .timeline import RunResult, TimelineController


# ── Shared argument handling (also used by plan_cli) ──────────────

# CLI dest -> manifest option key.
_OVERRIDES = {
    "duration": "duration",
    "min_clip_pct": "min_clip_pct",
    "max_clip_pct": "max_clip_pct",
    "zoom_probability": "zoom_probability",
    "min_zoom_pct": "min_zoom_pct",
    "max_zoom_pct": "max_zoom_pct",
    "width": "width",
    "height": "height",
    "fps": "fps",
    "slots": "slots",
    "overlap": "overlap",
    "stop_policy": "stop_policy",
    "seed": "seed",
}


def add_run_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "inputs", nargs="*", default=[],
        help="Video files or directories (added to manifest inputs)",
    )
    parser.add_argument(
        "--manifest", default=None,
        help="Path to YAML run manifest",
    )
    parser.add_argument(
        "--duration", type=float, default=None,
        help="Target output duration in seconds",
    )
    parser.add_argument(
        "--min-clip-pct", type=float, default=None,
        help="Minimum clip length as %% of its source (default: 10)",
    )
    parser.add_argument(
        "--max-clip-pct", type=float, default=None,
        help="Maximum clip length as %% of its source (default: 30)",
    )
    parser.add_argument(
        "--zoom-probability", type=float, default=None,
        help="Chance in %% that a clip gets a random zoom (default: 0)",
    )
    parser.add_argument("--min-zoom-pct", type=float, default=None)
    parser.add_argument("--max-zoom-pct", type=float, default=None)
    parser.add_argument("--width", type=int, default=None)
    parser.add_argument("--height", type=int, default=None)
    parser.add_argument("--fps", type=float, default=None)
    parser.add_argument(
        "--slots", type=int, default=None,
        help="Preload slot pool size (default: 4)",
    )
    parser.add_argument(
        "--overlap", type=float, default=None,
        help="Seconds of double exposure between clips (default: 1.0)",
    )
    parser.add_argument(
        "--stop-policy", choices=[p.value for p in StopPolicy], default=None,
        help="clips: play every planned clip; time: stop at exactly "
             "--duration (default); planned: stop once planned lengths "
             "reach --duration",
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Seed the random source for a repeatable montage",
    )


def gather_run_config(args) -> tuple[list, RunSettings]:
    """Merge manifest and CLI values into (input paths, RunSettings)."""
    inputs, options = [], {}
    if args.manifest:
        manifest = load_run_manifest(args.manifest)
        inputs.extend(manifest["inputs"])
        options.update(manifest["options"])
    inputs.extend(args.inputs)
    for dest, key in _OVERRIDES.items():
        value = getattr(args, dest)
        if value is not None:
            options[key] = value
    return resolve_inputs(inputs), build_settings(options)


# ── Rendering ─────────────────────────────────────────────────────


def render_montage(
    inputs,
    settings: RunSettings,
    output_path: str,
    progress=report,
) -> RunResult:
    """Plan, composite and encode one montage to *output_path*."""
    recorder = FfmpegRecorder(
        output_path,
        (settings.width, settings.height),
        fps=settings.fps,
        codec=settings.codec,
        bitrate=settings.bitrate,
        progress=progress,
    )
    controller = TimelineController(
        MediaResource.from_paths(inputs),
        settings,
        recorder,
        source_factory=lambda: MoviepySource(fps=settings.fps),
        prober=DurationProber(),
        progress=progress,
    )
    return asyncio.run(controller.run())


# ── CLI entry point ───────────────────────────────────────────────


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Render a random montage of video clips to mp4.",
    )
    add_run_arguments(parser)
    parser.add_argument(
        "--output",
        help="Output mp4 path",
    )
    parser.add_argument(
        "--validate", action="store_true",
        help="Validate manifest and inputs only — don't render",
    )
    parser.add_argument(
        "--quiet", action="store_true",
        help="Suppress the progress trace",
    )
    args = parser.parse_args(args)

    try:
        inputs, settings = gather_run_config(args)
    except (ValueError, FileNotFoundError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.validate:
        print(f"Run valid: {len(inputs)} input video(s)")
        for p in inputs:
            print(f"  {p}")
        print(
            f"Output: {settings.width}x{settings.height}, {settings.fps:g}fps, "
            f"{settings.target_duration:g}s, stop policy '{settings.stop_policy.value}'"
        )
        return

    if not args.output:
        parser.error("--output is required (unless using --validate)")

    progress = silent if args.quiet else report
    progress("Starting video editing process...")
    t0 = time.monotonic()
    try:
        result = render_montage(inputs, settings, args.output, progress=progress)
    except ClipShuffleError as exc:
        # The progress trace already carries the error unless --quiet.
        if args.quiet:
            print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    if result.output is None:
        print("Nothing rendered.")
        return
    elapsed = time.monotonic() - t0
    print(
        f"\nDone: {result.output.path} — {result.clips_played} clips, "
        f"{result.duration:.1f}s video ({result.output.codec}), {elapsed:.1f}s wall"
    )


if __name__ == "__main__":
    main()
