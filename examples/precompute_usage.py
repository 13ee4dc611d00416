"""
Example: stochastic texturing precomputation.

Demonstrates how to use stochtex for:
- Precomputing a single map by kind
- Step-by-step precomputation with the building blocks
- Block-compressed output and the renderer-side restore
- Precomputing a whole material concurrently
"""

import logging

import numpy as np

from stochtex import (
    LoggingProgress,
    MapKind,
    PixelBuffer,
    PrecomputeConfig,
    StochasticLayers,
    compute_forward_transform,
    compute_inverse_lut,
    decorrelate,
    get_numba_status,
    is_selected,
    precompute,
    precompute_many,
    prefilter_lut,
    restore,
)

# Configure logging to see pipeline statistics
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


def generate_sample_texture(size: int = 256) -> PixelBuffer:
    """Generate a tileable-looking RGBA texture with correlated color."""
    rng = np.random.default_rng(42)

    y, x = np.mgrid[0:size, 0:size] / size
    pattern = 0.5 + 0.25 * np.sin(12 * np.pi * x) * np.cos(8 * np.pi * y)
    noise = rng.random((size, size))
    luminance = np.clip(0.7 * pattern + 0.3 * noise, 0.0, 1.0)

    rgb = np.stack([0.9 * luminance, 0.6 * luminance + 0.1, 0.3 * luminance + 0.2], axis=2)
    alpha = np.ones((size, size, 1))
    return PixelBuffer.from_array(np.concatenate([rgb, alpha], axis=2).astype(np.float32))


def example_1_single_map():
    """Example 1: Precompute an albedo map."""
    print("\n" + "=" * 70)
    print("EXAMPLE 1: Albedo Precomputation")
    print("=" * 70)

    texture = generate_sample_texture()
    result = precompute(texture, MapKind.ALBEDO, progress=LoggingProgress())

    print(f"Forward texture: {result.forward.width}x{result.forward.height}")
    print(f"LUT:             {result.lut.width}x{result.lut.height} ({result.lut.num_levels} levels)")
    print(f"Basis origin:    {np.round(result.basis.origin, 4)}")
    print(f"Basis vectors:\n{np.round(result.basis.vectors, 4)}")


def example_2_step_by_step():
    """Example 2: Building blocks for one channel."""
    print("\n" + "=" * 70)
    print("EXAMPLE 2: Step-by-Step (red channel of a decorrelated texture)")
    print("=" * 70)

    texture = generate_sample_texture(128)
    decorrelated, basis = decorrelate(texture)

    forward = compute_forward_transform(decorrelated, 0)
    lut = compute_inverse_lut(decorrelated, 0)
    lut = prefilter_lut(forward, lut, 0)

    values = forward.channel(0)
    print(f"Gaussianized mean: {values.mean():.4f} (target 0.5)")
    print(f"Gaussianized std:  {values.std():.4f} (target 0.16666)")

    # Renderer side: T^-1(T(x)) recovers x
    recovered = lut.sample(values, 0)
    error = np.abs(recovered - decorrelated.channel(0))
    print(f"Round-trip error:  mean {error.mean():.5f}, max {error.max():.5f}")

    for level in range(lut.num_levels):
        row = lut.row(level, 0)
        print(f"  Level {level}: LUT range [{row.min():.4f}, {row.max():.4f}]")


def example_3_block_compressed():
    """Example 3: Block-compressed output."""
    print("\n" + "=" * 70)
    print("EXAMPLE 3: Block Compression Rescaling")
    print("=" * 70)

    texture = generate_sample_texture()
    config = PrecomputeConfig(block_compressed=True, sort_axes=True)
    result = precompute(texture, "albedo", config)

    print(f"Scalers: {tuple(round(s, 4) for s in result.scalers.values)}")

    # The renderer undoes the rescale before the LUT fetch
    restored = restore(result.forward, result.scalers)
    print(f"Restored mean: {restored.data[:, :3].mean(axis=0)}")


def example_4_material():
    """Example 4: Precompute the selected layers of a material."""
    print("\n" + "=" * 70)
    print("EXAMPLE 4: Material Batch")
    print("=" * 70)

    texture = generate_sample_texture()
    layers = StochasticLayers.ALBEDO | StochasticLayers.NORMAL | StochasticLayers.HEIGHT
    candidates = {
        MapKind.ALBEDO: texture,
        MapKind.NORMAL: texture,
        MapKind.HEIGHT: texture,
        MapKind.OCCLUSION: texture,
    }
    maps = {kind: buffer for kind, buffer in candidates.items() if is_selected(layers, kind)}

    results = precompute_many(maps, max_workers=4)

    for kind, result in results.items():
        print(f"{kind.label:<12} channels {result.channels}, decorrelated: {result.decorrelated}")


def main():
    """Run all examples."""
    print("\n" + "=" * 70)
    print("STOCHTEX PRECOMPUTATION EXAMPLES")
    print("=" * 70)
    print(f"Numba: {get_numba_status()}")

    example_1_single_map()
    example_2_step_by_step()
    example_3_block_compressed()
    example_4_material()

    print("\n" + "=" * 70)
    print("ALL EXAMPLES COMPLETED")
    print("=" * 70)


if __name__ == "__main__":
    main()
