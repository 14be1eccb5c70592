from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

from inventory_insights.config import get_settings


def run_concurrently(*calls: Callable[[], Any]) -> list[Any]:
    """Run independent blocking reads on a thread pool and return results in call order."""
    if len(calls) <= 1:
        return [call() for call in calls]
    workers = max(1, min(len(calls), get_settings().READ_WORKERS))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ledger-read") as pool:
        futures = [pool.submit(call) for call in calls]
        return [future.result() for future in futures]


__all__ = ["run_concurrently"]
