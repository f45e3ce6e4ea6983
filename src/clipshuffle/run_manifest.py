"""Run manifest loader — montage settings and inputs from YAML.

Input entries may use ${var} variables defined in the `paths` section.

Run manifest schema:
  paths:
    footage: "/data/footage"
  inputs:                     # files or directories of videos
    - "${footage}/beach"
    - "${footage}/city.mp4"
  output:
    width: 1280
    height: 720
    fps: 30
    background: "#000000"
    codec: libx264
    bitrate: 8000000
  run:
    duration: 60              # seconds, > 0
    min_clip_pct: 10          # clip length as % of its source, (0, 100]
    max_clip_pct: 30
    zoom_probability: 40      # % of clips that get a zoom crop
    min_zoom_pct: 110         # zoom factor range in %
    max_zoom_pct: 160
    slots: 4                  # preload slot pool size
    overlap: 1.0              # seconds of double exposure between clips
    overlap_mix: 0.5
    stop_policy: time         # clips | time | planned
    drain_delay: 0
    seed: null
"""

from pathlib import Path

import yaml

from .common import collect_media_paths, parse_hex_color, resolve_path_vars
from .framing import ZoomConfig
from .settings import RunSettings, StopPolicy


VALID_STOP_POLICIES = {p.value for p in StopPolicy}

# manifest key -> (section, RunSettings field, type)
_FIELDS = {
    "width": ("output", "width", int),
    "height": ("output", "height", int),
    "fps": ("output", "fps", float),
    "codec": ("output", "codec", str),
    "bitrate": ("output", "bitrate", int),
    "duration": ("run", "target_duration", float),
    "min_clip_pct": ("run", "min_clip_pct", float),
    "max_clip_pct": ("run", "max_clip_pct", float),
    "slots": ("run", "slots", int),
    "overlap": ("run", "overlap", float),
    "overlap_mix": ("run", "overlap_mix", float),
    "drain_delay": ("run", "drain_delay", float),
    "seed": ("run", "seed", int),
}

_ZOOM_FIELDS = {
    "zoom_probability": "probability",
    "min_zoom_pct": "min_pct",
    "max_zoom_pct": "max_pct",
}


def load_run_manifest(manifest_path: str | Path) -> dict:
    """Load, validate, and normalize a run manifest.

    Processing pipeline:
      1. Parse YAML.
      2. Resolve ${path} variables in inputs.
      3. Coerce output/run values to their types.
      4. Validate stop_policy and duration.

    Args:
        manifest_path: Path to the YAML run manifest.

    Returns:
        Dict with "inputs" (list of str) and "options" (flat dict of
        settings keyed like the manifest, only the keys present).

    Raises:
        ValueError: Missing/invalid fields.
    """
    with open(manifest_path) as f:
        raw = yaml.safe_load(f) or {}

    paths = raw.get("paths", {})
    inputs = raw.get("inputs", [])
    if not isinstance(inputs, list):
        raise ValueError("Run manifest: 'inputs' must be a list")
    inputs = [resolve_path_vars(str(p), paths) for p in inputs]

    options = {}
    for section in ("output", "run"):
        values = raw.get(section) or {}
        if not isinstance(values, dict):
            raise ValueError(f"Run manifest: '{section}' must be a mapping")
        for key, value in values.items():
            options[key] = _coerce(section, key, value)

    return {"inputs": inputs, "options": options}


def _coerce(section: str, key: str, value):
    if key == "background" and section == "output":
        return parse_hex_color(str(value))
    if key == "stop_policy" and section == "run":
        if value not in VALID_STOP_POLICIES:
            raise ValueError(
                f"Run manifest: invalid run.stop_policy '{value}'. "
                f"Valid: {sorted(VALID_STOP_POLICIES)}"
            )
        return value
    if key in _ZOOM_FIELDS and section == "run":
        return _typed(section, key, value, float)
    if key in _FIELDS and _FIELDS[key][0] == section:
        return _typed(section, key, value, _FIELDS[key][2])
    raise ValueError(f"Run manifest: unknown field '{section}.{key}'")


def _typed(section: str, key: str, value, kind):
    if value is None and key in ("seed", "bitrate"):
        return None
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ValueError(
            f"Run manifest: {section}.{key} must be {kind.__name__}, got {value!r}"
        ) from None


def build_settings(options: dict) -> RunSettings:
    """Turn a flat options dict (manifest keys) into RunSettings.

    Raises:
        ValueError: duration missing or <= 0, or any RunSettings check.
        InvalidRange: An inverted or out-of-range min/max pair.
    """
    duration = options.get("duration")
    if duration is None:
        raise ValueError("A target duration is required (run.duration or --duration)")
    if duration <= 0:
        raise ValueError(f"Target duration must be > 0, got {duration}")

    kwargs = {}
    for key, value in options.items():
        if key in _FIELDS:
            kwargs[_FIELDS[key][1]] = value
        elif key == "background":
            kwargs["background"] = value
        elif key == "stop_policy":
            kwargs["stop_policy"] = StopPolicy(value)

    zoom_kwargs = {
        field: options[key] for key, field in _ZOOM_FIELDS.items() if key in options
    }
    kwargs["zoom"] = ZoomConfig(**zoom_kwargs)
    return RunSettings(**kwargs)


def resolve_inputs(inputs: list[str]) -> list[Path]:
    """Expand input entries into video files; at least one is required.

    Raises:
        FileNotFoundError: Missing entries.
        ValueError: No videos found at all.
    """
    if not inputs:
        raise ValueError("No inputs given (manifest 'inputs' or CLI arguments)")
    found = collect_media_paths(inputs)
    if not found:
        raise ValueError(f"No video files found in: {', '.join(map(str, inputs))}")
    return found
