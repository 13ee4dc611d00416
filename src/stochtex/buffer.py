"""
Pixel buffers and look-up tables.

PixelBuffer is the uniform representation every precomputation step reads and
writes: a dense row-major grid of RGBA float32 samples. LookUpTable is a
PixelBuffer laid out as an inverse transform table, one row per mip level.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from stochtex.constants import BUFFER_DTYPE, LUT_WIDTH, NUM_CHANNELS
from stochtex.validators import validate_channel


@dataclass
class PixelBuffer:
    """
    2-D grid of RGBA floating-point samples.

    Pixel (x, y) is stored at row ``y * width + x`` of ``data``.

    Attributes:
        width: Number of columns (> 0)
        height: Number of rows (> 0)
        data: Samples [width * height, 4] (float32)
    """

    width: int
    height: int
    data: np.ndarray

    def __post_init__(self) -> None:
        """Validate dimensions and coerce data to a float32 [N, 4] array."""
        if isinstance(self.width, bool) or not isinstance(self.width, (int, np.integer)):
            raise TypeError(f"width must be an integer, got {type(self.width).__name__}")
        if isinstance(self.height, bool) or not isinstance(self.height, (int, np.integer)):
            raise TypeError(f"height must be an integer, got {type(self.height).__name__}")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Buffer dimensions must be positive, got {self.width}x{self.height}."
            )
        self.width = int(self.width)
        self.height = int(self.height)

        self.data = np.asarray(self.data, dtype=BUFFER_DTYPE)
        expected = (self.width * self.height, NUM_CHANNELS)
        if self.data.shape != expected:
            raise ValueError(
                f"data has shape {self.data.shape}, expected {expected} "
                f"for a {self.width}x{self.height} buffer."
            )

    @classmethod
    def zeros(cls, width: int, height: int) -> PixelBuffer:
        """Create a buffer with every channel set to 0."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Buffer dimensions must be positive, got {width}x{height}.")
        return cls(width, height, np.zeros((width * height, NUM_CHANNELS), dtype=BUFFER_DTYPE))

    @classmethod
    def from_array(cls, array: np.ndarray) -> PixelBuffer:
        """
        Build a buffer from an image array.

        Args:
            array: Image [H, W] (single channel) or [H, W, C] with C in 1..4

        Returns:
            PixelBuffer holding a copy of the samples. Missing color channels
            are 0, a missing alpha channel is 1.

        Example:
            >>> image = np.random.rand(64, 64, 3).astype(np.float32)
            >>> buffer = PixelBuffer.from_array(image)
            >>> buffer.width, buffer.height
            (64, 64)
        """
        array = np.asarray(array, dtype=BUFFER_DTYPE)
        if array.ndim == 2:
            array = array[:, :, np.newaxis]
        if array.ndim != 3 or not 1 <= array.shape[2] <= NUM_CHANNELS:
            raise ValueError(
                f"Expected an image of shape [H, W] or [H, W, C] with C in 1..4, "
                f"got {array.shape}."
            )
        height, width, channels = array.shape
        if width == 0 or height == 0:
            raise ValueError("Image is empty. Provide at least one pixel.")

        data = np.zeros((height * width, NUM_CHANNELS), dtype=BUFFER_DTYPE)
        data[:, 3] = 1.0
        data[:, :channels] = array.reshape(height * width, channels)
        return cls(width, height, data)

    # ========================================================================
    # Properties
    # ========================================================================

    @property
    def num_pixels(self) -> int:
        """Number of pixels (width * height)."""
        return self.width * self.height

    @property
    def shape(self) -> tuple[int, int]:
        """(height, width), matching NumPy image conventions."""
        return (self.height, self.width)

    def __len__(self) -> int:
        return self.num_pixels

    # ========================================================================
    # Access
    # ========================================================================

    def copy(self) -> PixelBuffer:
        """Deep copy; the result never shares memory with this buffer."""
        return PixelBuffer(self.width, self.height, self.data.copy())

    def index(self, x: int, y: int) -> int:
        """Linear index of pixel (x, y)."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(
                f"Pixel ({x}, {y}) is outside a {self.width}x{self.height} buffer."
            )
        return y * self.width + x

    def get_color(self, x: int, y: int) -> np.ndarray:
        """Copy of the RGBA sample at (x, y)."""
        return self.data[self.index(x, y)].copy()

    def set_color(self, x: int, y: int, value) -> None:
        """Overwrite the RGBA sample at (x, y)."""
        self.data[self.index(x, y)] = value

    @validate_channel("channel", 3)
    def set_channel(self, x: int, y: int, channel: int, value: float) -> None:
        """Overwrite one channel of the sample at (x, y)."""
        self.data[self.index(x, y), channel] = value

    @validate_channel("channel", 1)
    def channel(self, channel: int, copy: bool = False) -> np.ndarray:
        """
        Samples of one channel in linear (row-major) order.

        Args:
            channel: Channel index (0=R, 1=G, 2=B, 3=A)
            copy: If True, return an independent array instead of a view

        Returns:
            Channel samples [width * height]
        """
        values = self.data[:, channel]
        return values.copy() if copy else values

    @validate_channel("channel", 1)
    def channel_2d(self, channel: int) -> np.ndarray:
        """View of one channel as an image [height, width]."""
        return self.data[:, channel].reshape(self.height, self.width)

    def to_array(self) -> np.ndarray:
        """Copy of the samples as an image [height, width, 4]."""
        return self.data.reshape(self.height, self.width, NUM_CHANNELS).copy()


def lut_levels(texture_width: int) -> int:
    """
    Number of prefiltered LUT levels for a texture: floor(log2(width)) + 1.

    Example:
        >>> lut_levels(256)
        9
        >>> lut_levels(1)
        1
    """
    if texture_width <= 0:
        raise ValueError(f"texture_width={texture_width} must be positive (> 0).")
    # bit_length avoids floating-point log2 rounding on exact powers of two
    return int(texture_width).bit_length()


class LookUpTable(PixelBuffer):
    """
    Inverse histogram transform table.

    ``width`` texels along the Gaussian value axis (LUT_WIDTH) and one row per
    mip level. Row 0 holds the unfiltered inverse transform; row L holds the
    same table blurred to match mip level L.
    """

    @classmethod
    def for_texture(cls, texture_width: int, lut_width: int = LUT_WIDTH) -> LookUpTable:
        """Zeroed table sized for a texture of the given width."""
        levels = lut_levels(texture_width)
        return cls(lut_width, levels, np.zeros((lut_width * levels, NUM_CHANNELS), dtype=BUFFER_DTYPE))

    @property
    def num_levels(self) -> int:
        """Number of mip levels (rows)."""
        return self.height

    def copy(self) -> LookUpTable:
        return LookUpTable(self.width, self.height, self.data.copy())

    @validate_channel("channel", 2)
    def row(self, level: int, channel: int) -> np.ndarray:
        """Copy of one level of one channel [width]."""
        if not 0 <= level < self.num_levels:
            raise IndexError(f"level={level} is outside [0, {self.num_levels - 1}].")
        return self.channel_2d(channel)[level].copy()

    @validate_channel("channel", 2)
    def set_row(self, level: int, channel: int, values) -> None:
        """Overwrite one level of one channel."""
        if not 0 <= level < self.num_levels:
            raise IndexError(f"level={level} is outside [0, {self.num_levels - 1}].")
        start = level * self.width
        self.data[start : start + self.width, channel] = values

    @validate_channel("channel", 2)
    def sample(self, values, channel: int, level: int = 0) -> np.ndarray:
        """
        Evaluate the table at Gaussian-domain positions.

        Texel i covers [i / width, (i + 1) / width]; values are linearly
        interpolated between texel centers and clamped to the edge texels,
        matching a bilinear, clamp-addressed texture fetch.

        Args:
            values: Positions in the Gaussian domain (scalar or array)
            channel: Channel to read
            level: Mip level (row) to read

        Returns:
            Reconstructed input values with the shape of ``values``
        """
        row = self.row(level, channel).astype(np.float64)
        centers = (np.arange(self.width, dtype=np.float64) + 0.5) / self.width
        return np.interp(np.asarray(values, dtype=np.float64), centers, row)

