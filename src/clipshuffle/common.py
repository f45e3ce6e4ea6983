"""clipshuffle.common — shared utilities.

Contains: color parsing, path variable resolution, input discovery,
range validation, and the progress trace printer.
"""

import re
from pathlib import Path

from .errors import InvalidRange


# ── Input discovery ────────────────────────────────────────────────

VIDEO_EXTENSIONS = {".mp4", ".mov", ".mkv", ".webm", ".avi", ".m4v"}


# ── Progress trace ─────────────────────────────────────────────────

def report(message: str) -> None:
    """Print one line of the human-readable progress trace."""
    print(message, flush=True)


def silent(message: str) -> None:
    """Progress sink that drops every message (--quiet)."""


# ── Color utilities ────────────────────────────────────────────────

def parse_hex_color(hex_str: str) -> tuple[int, int, int]:
    """Convert '#RRGGBB' or 'RRGGBB' string to (R, G, B) tuple."""
    hex_str = hex_str.lstrip("#")
    if len(hex_str) != 6:
        raise ValueError(f"Invalid hex color: '#{hex_str}'")
    return (int(hex_str[0:2], 16), int(hex_str[2:4], 16), int(hex_str[4:6], 16))


# ── Path utilities ─────────────────────────────────────────────────

def resolve_path_vars(text: str, paths: dict[str, str]) -> str:
    """Replace ${name} variables in a string using the paths dict."""
    def _replace(match):
        key = match.group(1)
        if key not in paths:
            raise ValueError(f"Unknown path variable: ${{{key}}}")
        return paths[key]
    return re.sub(r"\$\{(\w+)\}", _replace, text)


def collect_media_paths(entries: list[str | Path]) -> list[Path]:
    """Expand a list of files and directories into video file paths.

    Directories are scanned (non-recursively) for VIDEO_EXTENSIONS and
    their matches sorted by name, so the pool order is stable for a
    given seed. Explicit file entries are kept as given, whatever their
    extension. Duplicates are dropped, first occurrence wins.

    Raises:
        FileNotFoundError: Lists every entry that does not exist.
    """
    missing = [str(e) for e in entries if not Path(e).exists()]
    if missing:
        msg = f"Missing {len(missing)} input(s):\n"
        for p in missing:
            msg += f"  - {p}\n"
        raise FileNotFoundError(msg)

    found = []
    seen = set()
    for entry in entries:
        p = Path(entry)
        if p.is_dir():
            candidates = sorted(
                c for c in p.iterdir()
                if c.is_file() and c.suffix.lower() in VIDEO_EXTENSIONS
            )
        else:
            candidates = [p]
        for c in candidates:
            key = c.resolve()
            if key in seen:
                continue
            seen.add(key)
            found.append(c)
    return found


# ── Range validation ───────────────────────────────────────────────

def check_pct_range(
    name: str, low: float, high: float, upper: float | None = 100.0,
) -> None:
    """Validate a paired (min, max) percentage bound.

    Both values must be > 0, low <= high, and (when *upper* is set)
    neither may exceed it.

    Raises:
        InvalidRange: With a message naming the offending pair.
    """
    if low <= 0 or high <= 0:
        raise InvalidRange(
            f"{name}: bounds must be > 0, got min={low}, max={high}"
        )
    if low > high:
        raise InvalidRange(f"{name}: min ({low}) must be <= max ({high})")
    if upper is not None and high > upper:
        raise InvalidRange(
            f"{name}: bounds must be <= {upper:g}, got max={high}"
        )
