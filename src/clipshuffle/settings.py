"""Run settings — every knob a montage run reads, validated once."""

import enum
from dataclasses import dataclass, field

from .common import check_pct_range
from .framing import ZoomConfig
from .recorder import PREFERRED_BITRATE, PREFERRED_CODEC


class StopPolicy(enum.Enum):
    """When the timeline stops producing frames.

    CLIPS: after every planned clip has played. Overshoots the target,
        since clip lengths are random and never trimmed.
    TIME: once the recording holds exactly the target duration. The last
        clip is cut at the frame, and slots replay their clips if the
        plan runs out first.
    PLANNED: once the planned lengths of the played clips reach the target.
    """

    CLIPS = "clips"
    TIME = "time"
    PLANNED = "planned"


@dataclass(frozen=True)
class RunSettings:
    target_duration: float
    min_clip_pct: float = 10.0
    max_clip_pct: float = 30.0
    zoom: ZoomConfig = field(default_factory=ZoomConfig)
    width: int = 1280
    height: int = 720
    fps: float = 30
    background: tuple[int, int, int] = (0, 0, 0)
    codec: str = PREFERRED_CODEC
    bitrate: int | None = PREFERRED_BITRATE
    slots: int = 4
    overlap: float = 1.0
    overlap_mix: float = 0.5
    reserve_overlap: bool = True
    extend_tail: bool = True
    stop_policy: StopPolicy = StopPolicy.TIME
    drain_delay: float = 0.0
    seed: int | None = None

    def __post_init__(self):
        check_pct_range("clip length %", self.min_clip_pct, self.max_clip_pct)
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Output size must be positive, got {self.width}x{self.height}"
            )
        if self.fps <= 0:
            raise ValueError(f"fps must be > 0, got {self.fps}")
        if self.slots < 1:
            raise ValueError(f"slots must be >= 1, got {self.slots}")
        if self.overlap < 0:
            raise ValueError(f"overlap must be >= 0, got {self.overlap}")
        if not 0 < self.overlap_mix <= 1:
            raise ValueError(
                f"overlap_mix must be within (0, 1], got {self.overlap_mix}"
            )
        if self.drain_delay < 0:
            raise ValueError(f"drain_delay must be >= 0, got {self.drain_delay}")
        if not isinstance(self.stop_policy, StopPolicy):
            object.__setattr__(self, "stop_policy", StopPolicy(self.stop_policy))
