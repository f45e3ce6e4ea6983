"""Subcommand dispatcher for clipshuffle.

Usage:
    clipshuffle render  footage/ --duration 30 --output montage.mp4
    clipshuffle plan    footage/ --duration 30 --seed 7
"""

import argparse
import sys


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="clipshuffle",
        description="Random multi-clip video montages.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Register subcommands. Each delegates to its own module's main().
    subparsers.add_parser("render", help="Render a random montage to mp4")
    subparsers.add_parser("plan", help="Print a random clip plan without rendering")

    # Parse only the subcommand name, pass the rest to the subcommand's parser.
    parsed, remaining = parser.parse_known_args(args)

    if parsed.command is None:
        # No subcommand given at all: show help and exit with error.
        parser.print_help()
        sys.exit(1)

    if parsed.command == "render":
        from .render_cli import main as render_main
        render_main(remaining)
    elif parsed.command == "plan":
        from .plan_cli import main as plan_main
        plan_main(remaining)


if __name__ == "__main__":
    main()
