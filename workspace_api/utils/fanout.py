from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Callable, Iterable, List, TypeVar

from workspace_api.utils.logger import app_logger as logger

T = TypeVar("T")
R = TypeVar("R")


def fan_out(fn: Callable[[T], R], items: Iterable[T], max_workers: int = 10) -> List[R]:
    """
    Run `fn` over `items` with at most `max_workers` calls in flight.

    Results come back in input order. The first exception cancels whatever has
    not started yet and is re-raised once the running calls have finished.
    """
    if max_workers <= 0:
        raise ValueError("max_workers must be positive")
    items = list(items)
    if not items:
        return []

    with ThreadPoolExecutor(max_workers=min(max_workers, len(items))) as executor:
        futures = [executor.submit(fn, item) for item in items]
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)
        for future in pending:
            future.cancel()
        for future in futures:
            if future in done and future.exception() is not None:
                logger.debug(f"Fan-out cancelled {len(pending)} pending calls after an error")
                raise future.exception()
        return [future.result() for future in futures]
