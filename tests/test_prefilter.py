"""
Tests for mip-aware LUT prefiltering.
"""

import numpy as np
import pytest

from stochtex.buffer import LookUpTable, PixelBuffer
from stochtex.constants import LUT_WIDTH, PREFILTER_SAMPLE_FACTOR
from stochtex.gaussian import inv_cdf
from stochtex.histogram import compute_forward_transform, compute_inverse_lut
from stochtex.lut import (
    compute_level_variances,
    compute_subpixel_variance,
    filter_lut_row,
    prefilter_lut,
)


@pytest.fixture
def noise_buffer():
    rng = np.random.default_rng(21)
    return PixelBuffer.from_array(rng.random((32, 32, 4), dtype=np.float32))


@pytest.fixture
def prepared(noise_buffer):
    """Forward transform and unfiltered LUT of channel 0."""
    forward = compute_forward_transform(noise_buffer, 0)
    lut = compute_inverse_lut(noise_buffer, 0)
    return forward, lut


# ============================================================================
# Subpixel variance
# ============================================================================


class TestSubpixelVariance:
    """Test window variance estimation on the Gaussianized texture."""

    def test_level_zero(self, prepared):
        forward, _ = prepared
        assert compute_subpixel_variance(forward, 0, 0) == 0.0

    def test_whole_image_window(self, prepared):
        """Test the top level window covers the image: the channel variance."""
        forward, _ = prepared
        expected = np.var(forward.channel(0).astype(np.float64))

        assert compute_subpixel_variance(forward, 5, 0) == pytest.approx(expected, rel=1e-9)

    def test_increases_with_level(self, prepared):
        """Test coarser windows mix more values and hold more variance."""
        forward, _ = prepared
        variances = compute_level_variances(forward, 0, 6)

        assert variances[0] == 0.0
        assert np.all(np.diff(variances) > 0.0)

    def test_clipped_windows(self):
        """Test windows on the edges of a non-divisible image are clipped."""
        rng = np.random.default_rng(2)
        buffer = PixelBuffer.from_array(rng.random((6, 10), dtype=np.float32))
        image = buffer.channel_2d(0).astype(np.float64)

        expected = np.mean(
            [
                np.var(image[y : y + 4, x : x + 4])
                for y in range(0, 6, 4)
                for x in range(0, 10, 4)
            ]
        )
        assert compute_subpixel_variance(buffer, 2, 0) == pytest.approx(expected, rel=1e-9)

    def test_constant_channel(self):
        buffer = PixelBuffer.from_array(np.full((8, 8), 0.7, dtype=np.float32))
        assert compute_subpixel_variance(buffer, 2, 0) == pytest.approx(0.0, abs=1e-12)

    def test_flat_window_exactly_zero(self):
        buffer = PixelBuffer.from_array(np.full((8, 8), 0.1, dtype=np.float32))
        assert compute_subpixel_variance(buffer, 2, 0) == 0.0

    def test_negative_level(self, prepared):
        forward, _ = prepared
        with pytest.raises(ValueError, match="non-negative"):
            compute_subpixel_variance(forward, -1, 0)


# ============================================================================
# Row filtering
# ============================================================================


class TestFilterLutRow:
    def test_zero_std_is_identity(self):
        row = np.random.default_rng(4).random(LUT_WIDTH)
        np.testing.assert_allclose(filter_lut_row(row, 0.0), row, rtol=1e-12)

    def test_constant_row(self):
        row = np.full(LUT_WIDTH, 0.25)
        np.testing.assert_allclose(filter_lut_row(row, 0.1), row)

    def test_linear_ramp_interior(self):
        """Test a symmetric kernel keeps a linear ramp away from the edges."""
        row = (np.arange(LUT_WIDTH) + 0.5) / LUT_WIDTH
        filtered = filter_lut_row(row, 0.05)

        interior = slice(40, LUT_WIDTH - 40)
        np.testing.assert_allclose(filtered[interior], row[interior], atol=2.0 / LUT_WIDTH)

    def test_smooths_step(self):
        row = np.where(np.arange(LUT_WIDTH) < LUT_WIDTH // 2, 0.0, 1.0)
        filtered = filter_lut_row(row, 0.1)

        assert np.all(np.diff(filtered) >= 0.0)
        assert 0.0 < filtered[LUT_WIDTH // 2] < 1.0

    def test_matches_numpy_reference(self):
        """Test the compiled filter against a vectorized NumPy evaluation."""
        base = np.sort(np.random.default_rng(6).random(LUT_WIDTH))
        std = 0.0731

        samples = PREFILTER_SAMPLE_FACTOR * LUT_WIDTH
        x = (np.arange(LUT_WIDTH) + 0.5) / LUT_WIDTH
        u = (np.arange(samples) + 0.5) / samples
        positions = inv_cdf(u[np.newaxis, :], x[:, np.newaxis], std)
        texels = np.clip(np.floor(positions * LUT_WIDTH).astype(np.int64), 0, LUT_WIDTH - 1)
        expected = base[texels].mean(axis=1)

        np.testing.assert_allclose(filter_lut_row(base, std), expected, rtol=1e-9)

    @pytest.mark.parametrize("std", [-0.1, np.inf, np.nan])
    def test_invalid_std(self, std):
        with pytest.raises(ValueError, match="std"):
            filter_lut_row(np.zeros(LUT_WIDTH), std)


# ============================================================================
# LUT prefiltering
# ============================================================================


class TestPrefilterLut:
    """Test filling of LUT levels above 0."""

    def test_fills_every_level(self, prepared):
        forward, lut = prepared
        result = prefilter_lut(forward, lut, 0)

        assert result.num_levels == 6
        np.testing.assert_array_equal(result.row(0, 0), lut.row(0, 0))
        for level in range(1, result.num_levels):
            assert np.any(result.row(level, 0))

    def test_rows_flatten_with_level(self, prepared):
        """Test coarser levels pull the inverse transform towards the mean."""
        forward, lut = prepared
        result = prefilter_lut(forward, lut, 0)

        spreads = [np.var(result.row(level, 0)) for level in range(result.num_levels)]
        assert spreads[1] < spreads[0]
        assert spreads[-1] < spreads[1]

    def test_constant_row_zero_unchanged(self):
        """Test a constant channel gives every level equal to row 0."""
        buffer = PixelBuffer.from_array(np.full((16, 16, 4), 0.3, dtype=np.float32))
        forward = compute_forward_transform(buffer, 2)
        lut = compute_inverse_lut(buffer, 2)

        result = prefilter_lut(forward, lut, 2)

        for level in range(result.num_levels):
            np.testing.assert_allclose(result.row(level, 2), lut.row(0, 2), rtol=1e-6)

    def test_lut_not_modified(self, prepared):
        forward, lut = prepared
        snapshot = lut.data.copy()

        result = prefilter_lut(forward, lut, 0)

        np.testing.assert_array_equal(lut.data, snapshot)
        assert isinstance(result, LookUpTable)
        assert not np.shares_memory(result.data, lut.data)

    def test_other_channels_untouched(self, prepared):
        forward, lut = prepared
        result = prefilter_lut(forward, lut, 0)

        assert not np.any(result.data[:, 1:])

    def test_invalid_channel(self, prepared):
        forward, lut = prepared
        with pytest.raises(ValueError):
            prefilter_lut(forward, lut, 7)


# ============================================================================
# Checkerboard smoothing
# ============================================================================


class TestCheckerboard:
    """Test prefiltering of a one-pixel checkerboard channel."""

    @pytest.fixture
    def checkerboard(self):
        y, x = np.mgrid[0:64, 0:64]
        return PixelBuffer.from_array(((x + y) % 2).astype(np.float32))

    def test_variance_grows_with_level(self, checkerboard):
        """Test each coarser window mixes more Gaussianized values."""
        forward = compute_forward_transform(checkerboard, 0)
        variances = compute_level_variances(forward, 0, 7)

        assert variances[0] == 0.0
        assert np.all(np.diff(variances) > 0.0)

    def test_rows_flatten_with_level(self, checkerboard):
        """Test every coarser LUT row is a smoother step than the one below it."""
        forward = compute_forward_transform(checkerboard, 0)
        lut = compute_inverse_lut(checkerboard, 0)
        result = prefilter_lut(forward, lut, 0)

        base = result.row(0, 0)
        np.testing.assert_array_equal(base[: LUT_WIDTH // 2], 0.0)
        np.testing.assert_array_equal(base[LUT_WIDTH // 2 :], 1.0)

        spreads = np.array(
            [np.var(result.row(level, 0).astype(np.float64)) for level in range(result.num_levels)]
        )
        assert np.all(np.diff(spreads) <= 1e-9)
        assert spreads[-1] < spreads[1] < spreads[0]
        for level in range(1, result.num_levels):
            row = result.row(level, 0)
            assert np.all(np.diff(row) >= 0.0)
            assert 0.0 < row[LUT_WIDTH // 2] < 1.0
