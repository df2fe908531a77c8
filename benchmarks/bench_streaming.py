"""Repeatable benchmark for streaming latency through classify + recycle + render.

Feeds a synthetic assistant reply (prose, fenced code, image lines) into one
ContentStream as token-sized deltas and measures per-delta latency of the
stream update and of the cached render pass.

Usage:
    python benchmarks/bench_streaming.py             # default 500 deltas
    python benchmarks/bench_streaming.py --deltas 2000
    python benchmarks/bench_streaming.py --json       # machine-readable output
"""

import argparse
import json
import statistics
import sys
import time
import tracemalloc

from msgblocks.stream import ContentStream
from msgblocks.tui.rendering import RenderCache, render_blocks


# Realistic token-sized chunks (~4-15 chars each)
_CHUNK_TEXTS = [
    "The ", "quick ", "brown ", "fox ", "jumps ", "over ", "the ", "lazy ", "dog.\n",
    "```python\n", "def ", "jump(", "fox):\n", "    return ", "fox.", "over()\n", "```\n",
    "![fox](", "https://example.com/", "fox.png)\n",
    "Here ", "is ", "some ", "additional ", "text.\n",
]


def generate_deltas(n_deltas: int) -> list[str]:
    return [_CHUNK_TEXTS[i % len(_CHUNK_TEXTS)] for i in range(n_deltas)]


def _stage_stats(samples_ns: list[int]) -> dict:
    us = sorted(s / 1000 for s in samples_ns)

    def pct(p: float) -> float:
        return us[min(len(us) - 1, int(p * len(us)))]

    return {
        "count": len(us),
        "min_us": round(us[0], 2),
        "max_us": round(us[-1], 2),
        "mean_us": round(statistics.mean(us), 2),
        "p50_us": round(pct(0.50), 2),
        "p95_us": round(pct(0.95), 2),
        "p99_us": round(pct(0.99), 2),
    }


def run_benchmark(n_deltas: int) -> dict:
    """Run the streaming benchmark and return results dict."""
    deltas = generate_deltas(n_deltas)
    stream = ContentStream("bench")
    cache = RenderCache()
    update_ns: list[int] = []
    render_ns: list[int] = []
    reused = 0
    rendered = 0
    cache_hits = 0

    tracemalloc.start()
    wall_start = time.monotonic_ns()

    for delta in deltas:
        start = time.monotonic_ns()
        blocks = stream.append(delta)
        update_ns.append(time.monotonic_ns() - start)
        reused += stream.stats.reused

        start = time.monotonic_ns()
        result = render_blocks(blocks, cache=cache)
        render_ns.append(time.monotonic_ns() - start)
        rendered += result.rendered
        cache_hits += result.cache_hits

    wall_elapsed_ns = time.monotonic_ns() - wall_start
    mem_current, mem_peak = tracemalloc.get_traced_memory()
    tracemalloc.stop()

    return {
        "n_deltas": n_deltas,
        "n_chars": len(stream.text),
        "n_blocks": len(stream.blocks),
        "wall_time_ms": wall_elapsed_ns / 1_000_000,
        "mem_peak_kb": mem_peak / 1024,
        "mem_current_kb": mem_current / 1024,
        "blocks_reused": reused,
        "blocks_rendered": rendered,
        "render_cache_hits": cache_hits,
        "stages": {
            "stream.append": _stage_stats(update_ns),
            "render.blocks": _stage_stats(render_ns),
        },
    }


def print_report(results: dict) -> None:
    """Print a human-readable benchmark report."""
    print(f"\n{'='*60}")
    print("  Streaming Blocks Benchmark")
    print(f"{'='*60}")
    print(f"  Deltas:     {results['n_deltas']} ({results['n_chars']} chars, {results['n_blocks']} blocks)")
    print(f"  Wall time:  {results['wall_time_ms']:.1f} ms")
    print(f"  Memory:     {results['mem_peak_kb']:.0f} KB peak, "
          f"{results['mem_current_kb']:.0f} KB current")
    print(f"  Reuse:      {results['blocks_reused']} blocks reused, "
          f"{results['blocks_rendered']} rendered, {results['render_cache_hits']} cache hits")
    print()

    for stage_name, stats in results["stages"].items():
        print(f"  [{stage_name}] ({stats['count']} samples)")
        print(f"    min={stats['min_us']:.1f}us  "
              f"p50={stats['p50_us']:.1f}us  "
              f"p95={stats['p95_us']:.1f}us  "
              f"p99={stats['p99_us']:.1f}us  "
              f"max={stats['max_us']:.1f}us")
        print()

    print(f"{'='*60}\n")


def main() -> None:
    parser = argparse.ArgumentParser(description="Streaming classify/recycle/render benchmark")
    parser.add_argument("--deltas", type=int, default=500,
                        help="Number of text deltas (default: 500)")
    parser.add_argument("--json", action="store_true",
                        help="Output machine-readable JSON")
    args = parser.parse_args()

    results = run_benchmark(max(1, args.deltas))

    if args.json:
        json.dump(results, sys.stdout, indent=2)
        sys.stdout.write("\n")
    else:
        print_report(results)


if __name__ == "__main__":
    main()
