"""Error taxonomy for a montage run.

None of these are retried: a bad input, corrupt file or unsupported codec
will not fix itself on a second attempt, so each one aborts the run.
"""


class ClipShuffleError(Exception):
    """Base class for every run-aborting error."""


class EmptyResourcePool(ClipShuffleError, ValueError):
    """Planning was asked to pick clips from no input videos."""


class InvalidRange(ClipShuffleError, ValueError):
    """A paired min/max bound is inverted or outside its allowed range."""


class ResourceUnreadable(ClipShuffleError, OSError):
    """A video's metadata (duration, size) could not be read."""


class ClipLongerThanSource(ClipShuffleError, ValueError):
    """A drawn clip length exceeds the duration of its source video."""


class SeekFailed(ClipShuffleError, RuntimeError):
    """A playback slot could not bind or seek to its clip start."""


class PlaybackFailed(ClipShuffleError, RuntimeError):
    """A prepared slot could not start producing frames."""
