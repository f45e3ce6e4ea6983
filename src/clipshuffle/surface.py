"""Drawable output surface — the fixed-size frame the compositor paints.

Wraps one H x W x 3 uint8 numpy buffer. draw() scales a source
sub-rectangle into the whole surface with Pillow, which accepts the
float crop boxes produced by framing without rounding them first.
"""

import numpy as np
from PIL import Image

from .framing import Rect


class Surface:
    def __init__(
        self,
        width: int,
        height: int,
        background: tuple[int, int, int] = (0, 0, 0),
    ):
        if width <= 0 or height <= 0:
            raise ValueError(
                f"Surface size must be positive, got {width}x{height}"
            )
        self.width = width
        self.height = height
        self.background = np.array(background, dtype=np.uint8)
        self.frame = np.empty((height, width, 3), dtype=np.uint8)
        self.clear()

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def clear(self) -> None:
        self.frame[:, :] = self.background

    def draw(
        self,
        frame: np.ndarray,
        src_rect: Rect | None = None,
        opacity: float = 1.0,
    ) -> None:
        """Scale *src_rect* of *frame* to fill the surface.

        With no src_rect the whole source frame is stretched over the
        surface (used for the overlap layer, which is never cropped).
        opacity < 1 mixes the scaled frame over what is already drawn.
        """
        img = Image.fromarray(_as_rgb8(frame))
        box = src_rect.box() if src_rect is not None else None
        scaled = np.asarray(
            img.resize(self.size, Image.Resampling.BILINEAR, box=box)
        )
        if opacity >= 1.0:
            self.frame[:, :] = scaled
        else:
            mixed = (
                scaled.astype(np.float32) * opacity
                + self.frame.astype(np.float32) * (1.0 - opacity)
            )
            self.frame[:, :] = np.round(mixed).astype(np.uint8)

    def snapshot(self) -> np.ndarray:
        """Copy of the current frame, safe to keep after the next clear()."""
        return self.frame.copy()


def _as_rgb8(frame: np.ndarray) -> np.ndarray:
    """Coerce a decoded frame to contiguous uint8 RGB."""
    if frame.dtype != np.uint8:
        frame = np.clip(frame, 0, 255).astype(np.uint8)
    if frame.ndim == 2:
        frame = np.stack([frame] * 3, axis=-1)
    elif frame.shape[2] == 4:
        frame = frame[:, :, :3]
    return np.ascontiguousarray(frame)
