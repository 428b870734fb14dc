"""
Benchmark conversion performance.

Times the rank sort on its own and the full conversion at several image sizes.
"""

import logging
import time

import numpy as np

from gausstex import Converter, rank_sort

# Suppress logging for cleaner output
logging.getLogger("gausstex").setLevel(logging.WARNING)


def generate_image(size: int):
    """Generate a correlated RGBA test image."""
    rng = np.random.default_rng(42)

    base = rng.random((size, size, 1), dtype=np.float32)
    rgb = base * np.array([0.8, 0.5, 0.3], dtype=np.float32)
    rgb += rng.random((size, size, 3), dtype=np.float32) * 0.2
    alpha = rng.random((size, size, 1), dtype=np.float32)
    return np.concatenate([rgb, alpha], axis=2)


def _time(func, iterations: int) -> tuple[float, float]:
    # Warmup (includes JIT compilation)
    func()

    times = []
    for _ in range(iterations):
        start = time.perf_counter()
        func()
        end = time.perf_counter()
        times.append((end - start) * 1000)  # Convert to ms

    return float(np.mean(times)), float(np.std(times))


def benchmark_sort(n: int = 1 << 22, iterations: int = 10):
    """Benchmark the blocked bitonic rank sort."""
    print("\n" + "=" * 80)
    print(f"RANK SORT ({n:,} values, {iterations} iterations)")
    print("=" * 80)

    values = np.random.default_rng(42).random(n, dtype=np.float32)

    for block_size in (256, 2048, 8192):
        avg_time, std_time = _time(lambda: rank_sort(values, block_size), iterations)
        print(f"block={block_size:5d}  Time: {avg_time:9.2f} ms +/- {std_time:.2f} ms  "
              f"Throughput: {n / (avg_time / 1000) / 1e6:.1f}M values/sec")

    avg_time, std_time = _time(lambda: np.argsort(values, kind="stable"), iterations)
    print(f"np.argsort  Time: {avg_time:9.2f} ms +/- {std_time:.2f} ms")


def benchmark_convert(iterations: int = 5):
    """Benchmark full conversions."""
    print("\n" + "=" * 80)
    print(f"FULL CONVERSION ({iterations} iterations)")
    print("=" * 80)

    converter = Converter().lut_size(4, 4).compression_correction(True)

    for size in (256, 512, 1024, 2048):
        image = generate_image(size)
        avg_time, std_time = _time(lambda: converter(image), iterations)
        pixels = size * size
        print(f"{size:4d}x{size:<4d}  Time: {avg_time:9.2f} ms +/- {std_time:.2f} ms  "
              f"Throughput: {pixels / (avg_time / 1000) / 1e6:.1f}M pixels/sec")


if __name__ == "__main__":
    benchmark_sort()
    benchmark_convert()
