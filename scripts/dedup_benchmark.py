#!/usr/bin/env python3
"""
Prompt deduplication benchmark.

Fires many overlapping requests over a small set of capability names and
reports how many prompts were shown and how long requests waited.

Usage examples:
  PYTHONPATH=src python scripts/dedup_benchmark.py
  PYTHONPATH=src python scripts/dedup_benchmark.py --requests 5000 --names 8 --latency-ms 20
"""

from __future__ import annotations

import argparse
import asyncio
import random
import statistics
import time

from permflow import InMemoryPermissionHost, PermissionCoordinator


async def run_benchmark(
    *,
    num_requests: int,
    num_names: int,
    batch_size: int,
    latency_ms: float,
    seed: int,
) -> None:
    rng = random.Random(seed)
    names = [f"CAP_{index}" for index in range(num_names)]

    async def dialog(batch: list[str]) -> list[bool]:
        await asyncio.sleep(latency_ms / 1000.0)
        return [rng.random() < 0.5 for _ in batch]

    host = InMemoryPermissionHost(prompt_handler=dialog)
    coordinator = PermissionCoordinator(host)

    latencies: list[float] = []

    async def one_request() -> None:
        wanted = rng.sample(names, k=min(batch_size, num_names))
        started = time.perf_counter()
        async for _ in coordinator.request(wanted):
            pass
        latencies.append(time.perf_counter() - started)

    started = time.perf_counter()
    await asyncio.gather(*(one_request() for _ in range(num_requests)))
    elapsed = time.perf_counter() - started

    prompted = sum(len(batch) for batch in host.dispatched)
    print(f"requests={num_requests} names={num_names} batch_size={batch_size}")
    print(f"prompt_batches={len(host.dispatched)} prompted_names={prompted}")
    print(f"elapsed_s={elapsed:.4f} throughput_rps={num_requests / elapsed:.1f}")
    if latencies:
        ordered = sorted(latencies)
        p95 = ordered[int(0.95 * (len(ordered) - 1))]
        print(
            f"latency_ms p50={statistics.median(ordered) * 1000:.2f} "
            f"p95={p95 * 1000:.2f} max={ordered[-1] * 1000:.2f}"
        )


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--requests", type=int, default=1000)
    parser.add_argument("--names", type=int, default=4)
    parser.add_argument("--batch-size", type=int, default=2)
    parser.add_argument("--latency-ms", type=float, default=10.0)
    parser.add_argument("--seed", type=int, default=7)
    args = parser.parse_args()

    asyncio.run(
        run_benchmark(
            num_requests=args.requests,
            num_names=args.names,
            batch_size=args.batch_size,
            latency_ms=args.latency_ms,
            seed=args.seed,
        )
    )


if __name__ == "__main__":
    main()
