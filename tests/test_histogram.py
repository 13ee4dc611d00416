"""
Tests for the histogram transformation and its inverse look-up table.
"""

import math

import numpy as np
import pytest

from stochtex.buffer import LookUpTable, PixelBuffer
from stochtex.constants import GAUSSIAN_AVERAGE, GAUSSIAN_STD, LUT_WIDTH
from stochtex.gaussian import inv_cdf
from stochtex.histogram import (
    compute_forward_transform,
    compute_inverse_lut,
    gaussian_quantiles,
    sort_order,
)


def _gaussian_cdf(x: float) -> float:
    return 0.5 * (1.0 + math.erf((x - GAUSSIAN_AVERAGE) / (GAUSSIAN_STD * math.sqrt(2.0))))


@pytest.fixture
def ramp_buffer():
    """4x4 buffer whose red channel holds k / 15 at linear index k."""
    image = np.zeros((4, 4, 4), dtype=np.float32)
    image[:, :, 0] = (np.arange(16, dtype=np.float32) / 15.0).reshape(4, 4)
    return PixelBuffer.from_array(image)


@pytest.fixture
def noise_buffer():
    """Create a 64x64 RGBA noise texture."""
    rng = np.random.default_rng(7)
    return PixelBuffer.from_array(rng.random((64, 64, 4), dtype=np.float32))


# ============================================================================
# Forward transform
# ============================================================================


class TestSortOrder:
    def test_ties_broken_by_index(self):
        values = np.array([0.5, 0.2, 0.5, 0.2])
        np.testing.assert_array_equal(sort_order(values), [1, 3, 0, 2])

    def test_quantiles_centered(self):
        quantiles = gaussian_quantiles(4)
        expected = inv_cdf(np.array([0.125, 0.375, 0.625, 0.875]))
        np.testing.assert_allclose(quantiles, expected)


class TestForwardTransform:
    """Test the rank-based histogram transformation T."""

    def test_ramp_is_strictly_increasing(self, ramp_buffer):
        """Test an increasing input maps to increasing Gaussian quantiles."""
        forward = compute_forward_transform(ramp_buffer, 0)
        values = forward.channel(0).astype(np.float64)

        assert np.all(np.diff(values) > 0.0)
        assert values[7] == pytest.approx(float(inv_cdf(7.5 / 16.0)), abs=1e-6)
        assert values[7] < 0.5
        assert values[8] > 0.5

    def test_preserves_rank_order(self, noise_buffer):
        forward = compute_forward_transform(noise_buffer, 2)

        np.testing.assert_array_equal(
            sort_order(forward.channel(2)), sort_order(noise_buffer.channel(2))
        )

    def test_ties_get_distinct_values(self):
        """Test equal inputs are ordered by linear index."""
        buffer = PixelBuffer.from_array(np.array([[0.5, 0.2], [0.5, 0.2]], dtype=np.float32))
        values = compute_forward_transform(buffer, 0).channel(0)

        assert values[1] < values[3] < values[0] < values[2]

    def test_output_follows_target_gaussian(self, noise_buffer):
        """Test the Kolmogorov-Smirnov distance to N(0.5, 0.16666^2) is small."""
        forward = compute_forward_transform(noise_buffer, 1)
        values = np.sort(forward.channel(1).astype(np.float64))
        n = values.shape[0]

        theoretical = np.array([_gaussian_cdf(v) for v in values])
        upper = np.arange(1, n + 1) / n - theoretical
        lower = theoretical - np.arange(n) / n
        ks = max(upper.max(), lower.max())

        assert ks < 0.01

    def test_single_pixel(self):
        buffer = PixelBuffer.from_array(np.full((1, 1, 4), 0.3, dtype=np.float32))
        forward = compute_forward_transform(buffer, 3)

        assert forward.channel(3)[0] == pytest.approx(0.5, abs=1e-7)

    def test_other_channels_untouched(self, noise_buffer):
        """Test channels not transformed stay as in the output buffer."""
        forward = compute_forward_transform(noise_buffer, 0)
        assert not np.any(forward.data[:, 1:])

        forward = compute_forward_transform(noise_buffer, 2, output=forward)
        assert np.any(forward.channel(0))
        assert np.any(forward.channel(2))
        assert not np.any(forward.channel(1))
        assert not np.any(forward.channel(3))

    def test_output_is_copied(self, noise_buffer):
        previous = compute_forward_transform(noise_buffer, 0)
        snapshot = previous.data.copy()

        result = compute_forward_transform(noise_buffer, 1, output=previous)

        np.testing.assert_array_equal(previous.data, snapshot)
        assert result is not previous

    def test_input_unchanged(self, noise_buffer):
        snapshot = noise_buffer.data.copy()
        compute_forward_transform(noise_buffer, 0)
        np.testing.assert_array_equal(noise_buffer.data, snapshot)

    def test_size_mismatch(self, noise_buffer):
        with pytest.raises(ValueError, match="same size"):
            compute_forward_transform(noise_buffer, 0, output=PixelBuffer.zeros(8, 8))

    def test_invalid_channel(self, noise_buffer):
        with pytest.raises(ValueError, match="outside valid range"):
            compute_forward_transform(noise_buffer, 4)
        with pytest.raises(TypeError, match="integer channel index"):
            compute_forward_transform(noise_buffer, "red")

    def test_invalid_input(self):
        with pytest.raises(TypeError, match="PixelBuffer"):
            compute_forward_transform(np.zeros((4, 4)), 0)


# ============================================================================
# Inverse LUT
# ============================================================================


class TestInverseLut:
    """Test row 0 of the inverse transform T^-1."""

    def test_shape(self):
        buffer = PixelBuffer.from_array(np.random.default_rng(0).random((4, 256, 4)))
        lut = compute_inverse_lut(buffer, 0)

        assert isinstance(lut, LookUpTable)
        assert lut.shape == (9, LUT_WIDTH)
        assert lut.num_levels == 9

    def test_row_is_monotonic(self, noise_buffer):
        lut = compute_inverse_lut(noise_buffer, 0)
        assert np.all(np.diff(lut.row(0, 0)) >= 0.0)

    def test_values_come_from_input(self, noise_buffer):
        lut = compute_inverse_lut(noise_buffer, 3)
        assert np.all(np.isin(lut.row(0, 3), noise_buffer.channel(3)))

    def test_inverts_forward_transform(self):
        """Test T^-1(T(x)) recovers x within one texel of value resolution."""
        rng = np.random.default_rng(3)
        values = rng.permutation(4096).astype(np.float64) / 4095.0
        buffer = PixelBuffer.from_array(values.reshape(64, 64).astype(np.float32))

        forward = compute_forward_transform(buffer, 0)
        lut = compute_inverse_lut(buffer, 0)

        recovered = lut.sample(forward.channel(0).astype(np.float64), 0)
        error = np.abs(recovered - buffer.channel(0))

        assert error.max() < 1.0 / LUT_WIDTH

    def test_single_pixel(self):
        buffer = PixelBuffer.from_array(np.full((1, 1, 4), 0.3, dtype=np.float32))
        lut = compute_inverse_lut(buffer, 1)

        assert lut.num_levels == 1
        np.testing.assert_allclose(lut.row(0, 1), np.full(LUT_WIDTH, 0.3), rtol=1e-6)

    def test_unselected_channels_stay_zero(self, noise_buffer):
        lut = compute_inverse_lut(noise_buffer, 1)
        lut = compute_inverse_lut(noise_buffer, 2, lut=lut)

        assert not np.any(lut.row(0, 0))
        assert not np.any(lut.row(0, 3))
        assert np.any(lut.row(0, 1))
        assert np.any(lut.row(0, 2))
        # Only level 0 is written
        assert not np.any(lut.data[LUT_WIDTH:])

    def test_lut_is_copied(self, noise_buffer):
        previous = compute_inverse_lut(noise_buffer, 0)
        snapshot = previous.data.copy()

        compute_inverse_lut(noise_buffer, 1, lut=previous)

        np.testing.assert_array_equal(previous.data, snapshot)

    def test_invalid_channel(self, noise_buffer):
        with pytest.raises(ValueError):
            compute_inverse_lut(noise_buffer, -1)
