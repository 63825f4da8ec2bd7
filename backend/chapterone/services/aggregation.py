"""
Merging local search results with external catalog results.

Providers are queried concurrently and independently: one provider raising or
running past the fan-out timeout is logged and contributes nothing, while the
others still count. Deduplication is by exact, case-sensitive (title, author)
equality with a local row, so near-duplicates ("Dune" vs "Dune.") both stay.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Iterable, List, Mapping, Sequence, Tuple, Union

from chapterone.services.catalog.base import CatalogAdapter
from chapterone.utils.timing import timed

logger = logging.getLogger(__name__)

DEFAULT_FANOUT_TIMEOUT_SECONDS = 15.0

Adapters = Union[Mapping[str, CatalogAdapter], Iterable[CatalogAdapter]]


def _dedup_key(book: Any) -> Tuple[str, str]:
    return (book.title, book.author)


def combine(local: Sequence[Any], external: Sequence[Any]) -> List[Any]:
    """
    Local results first in their original order, then every external result
    whose (title, author) does not exactly match a local one.

    Never drops a local result, and combine(local, combine(local, external))
    equals combine(local, external).
    """
    local_keys = {_dedup_key(book) for book in local}
    merged = list(local)
    merged.extend(book for book in external if _dedup_key(book) not in local_keys)
    return merged


def _adapter_list(adapters: Adapters) -> List[CatalogAdapter]:
    if isinstance(adapters, Mapping):
        return list(adapters.values())
    return list(adapters)


def fetch_external(
    adapters: Adapters,
    query: str,
    limit: int = 50,
    search_type: str = "all",
    timeout: float = DEFAULT_FANOUT_TIMEOUT_SECONDS,
) -> Tuple[List[Any], List[str]]:
    """
    Run ``search`` on every adapter concurrently and wait at most ``timeout`` seconds.

    Returns (books, failed_provider_names). Books keep adapter order. A
    provider that raises or has not finished in time lands in the failed list.
    """
    adapter_list = _adapter_list(adapters)
    if not adapter_list:
        return [], []

    executor = ThreadPoolExecutor(max_workers=len(adapter_list), thread_name_prefix="catalog")
    try:
        futures = [
            executor.submit(adapter.search, query, limit, search_type)
            for adapter in adapter_list
        ]
        with timed(f"external search {query!r} across {len(adapter_list)} provider(s)", logger):
            done, _ = wait(futures, timeout=timeout)
    finally:
        # Do not block the request on providers that are still running
        executor.shutdown(wait=False, cancel_futures=True)

    books: List[Any] = []
    failed: List[str] = []
    for adapter, future in zip(adapter_list, futures):
        if future not in done:
            logger.warning("Provider %s timed out after %.1fs for %r", adapter.name, timeout, query)
            failed.append(adapter.name)
            continue
        try:
            books.extend(future.result())
        except Exception as e:
            logger.warning("Provider %s failed for %r: %s", adapter.name, query, e)
            failed.append(adapter.name)

    return books, failed


def aggregate(
    local: Sequence[Any],
    adapters: Adapters,
    query: str,
    limit: int = 50,
    search_type: str = "all",
    timeout: float = DEFAULT_FANOUT_TIMEOUT_SECONDS,
) -> List[Any]:
    """Combine local results with whatever the providers returned; local-only when every provider fails."""
    external, failed = fetch_external(adapters, query, limit, search_type, timeout)
    if failed:
        logger.info(
            "Aggregation degraded for %r: %d provider(s) failed",
            query,
            len(failed),
            extra={"failed_providers": failed, "search_type": search_type},
        )
    return combine(local, external)
