"""
Benchmark stochastic texturing precomputation.

Times each pipeline stage and full map precomputation at several texture sizes.
"""

import logging
import time

import numpy as np

from stochtex import (
    MapKind,
    PixelBuffer,
    compute_forward_transform,
    compute_inverse_lut,
    decorrelate,
    precompute,
    precompute_many,
    prefilter_lut,
    warmup_numba_kernels,
)

# Suppress logging for cleaner output
logging.getLogger("stochtex").setLevel(logging.WARNING)


def generate_texture(size: int) -> PixelBuffer:
    """Generate a correlated RGBA texture."""
    rng = np.random.default_rng(42)
    base = rng.random((size, size, 1))
    rgb = np.clip(0.7 * base + 0.3 * rng.random((size, size, 3)), 0.0, 1.0)
    alpha = rng.random((size, size, 1))
    return PixelBuffer.from_array(np.concatenate([rgb, alpha], axis=2).astype(np.float32))


def time_call(func, iterations: int) -> tuple[float, float]:
    """Return mean and std of the call time in ms."""
    times = []
    for _ in range(iterations):
        start = time.perf_counter()
        func()
        end = time.perf_counter()
        times.append((end - start) * 1000)
    return float(np.mean(times)), float(np.std(times))


def benchmark_stages(size: int = 512, iterations: int = 10):
    """Benchmark the individual pipeline stages on one channel."""
    print("\n" + "=" * 80)
    print(f"PIPELINE STAGES ({size}x{size}, {iterations} iterations)")
    print("=" * 80)

    texture = generate_texture(size)
    forward = compute_forward_transform(texture, 0)
    lut = compute_inverse_lut(texture, 0)

    stages = [
        ("Decorrelation", lambda: decorrelate(texture)),
        ("Forward transform", lambda: compute_forward_transform(texture, 0)),
        ("Inverse LUT", lambda: compute_inverse_lut(texture, 0)),
        ("Prefilter", lambda: prefilter_lut(forward, lut, 0)),
    ]

    for name, func in stages:
        avg_time, std_time = time_call(func, iterations)
        print(f"{name:<20} {avg_time:8.3f} ms +/- {std_time:.3f} ms")


def benchmark_full_maps(iterations: int = 3):
    """Benchmark full precomputation of an albedo map at several sizes."""
    print("\n" + "=" * 80)
    print(f"FULL ALBEDO PRECOMPUTATION ({iterations} iterations)")
    print("=" * 80)

    for size in [128, 256, 512, 1024]:
        texture = generate_texture(size)
        avg_time, std_time = time_call(lambda: precompute(texture, MapKind.ALBEDO), iterations)
        throughput = size * size / (avg_time / 1000) / 1e6
        print(f"{size:>5}x{size:<5} {avg_time:9.2f} ms +/- {std_time:.2f} ms  ({throughput:.2f}M pixels/sec)")


def benchmark_batch(size: int = 512, iterations: int = 3):
    """Compare sequential and threaded precomputation of a material."""
    print("\n" + "=" * 80)
    print(f"MATERIAL BATCH ({size}x{size}, 4 maps, {iterations} iterations)")
    print("=" * 80)

    texture = generate_texture(size)
    maps = {
        MapKind.ALBEDO: texture,
        MapKind.NORMAL: texture,
        MapKind.HEIGHT: texture,
        MapKind.METALLIC: texture,
    }

    def sequential():
        for kind, buffer in maps.items():
            precompute(buffer, kind)

    seq_time, _ = time_call(sequential, iterations)
    par_time, _ = time_call(lambda: precompute_many(maps), iterations)

    print(f"Sequential: {seq_time:9.2f} ms")
    print(f"Threaded:   {par_time:9.2f} ms")
    print(f"Speedup:    {seq_time / par_time:.2f}x")


def main():
    """Run all benchmarks."""
    print("=" * 80)
    print("STOCHTEX PRECOMPUTATION BENCHMARKS")
    print("=" * 80)

    start = time.perf_counter()
    warmup_numba_kernels()
    print(f"JIT warmup: {(time.perf_counter() - start) * 1000:.1f} ms")

    benchmark_stages()
    benchmark_full_maps()
    benchmark_batch()

    print("\n" + "=" * 80)
    print("ALL BENCHMARKS COMPLETED")
    print("=" * 80)


if __name__ == "__main__":
    main()
