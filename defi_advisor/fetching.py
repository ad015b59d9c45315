"""Timeout-and-fallback helpers shared by every upstream data source."""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

import structlog

from defi_advisor.exceptions import UpstreamError

logger = structlog.get_logger()

T = TypeVar("T")

FALLBACK_SOURCE = "fallback"


async def fetch_with_timeout(
    source: str,
    factory: Callable[[], Awaitable[T]],
    timeout: float,
) -> T:
    """Await ``factory()`` bounded by ``timeout``; any failure becomes UpstreamError."""
    try:
        return await asyncio.wait_for(factory(), timeout=timeout)
    except TimeoutError as exc:
        raise UpstreamError(source, f"timed out after {timeout:g}s") from exc
    except UpstreamError:
        raise
    except Exception as exc:
        raise UpstreamError(source, str(exc) or type(exc).__name__) from exc


async def first_available(
    label: str,
    attempts: Sequence[tuple[str, Callable[[], Awaitable[T]]]],
    timeout: float,
    fallback: T,
) -> tuple[T, str]:
    """Try each (source, factory) in order; return the first value and its source.

    When every source fails the fallback is returned with source ``"fallback"``.
    """
    for source, factory in attempts:
        try:
            value = await fetch_with_timeout(source, factory, timeout)
        except UpstreamError as exc:
            logger.warning("upstream_unavailable", label=label, source=source, error=exc.message)
            continue
        logger.debug("upstream_fetched", label=label, source=source)
        return value, source

    logger.warning("upstream_fallback_used", label=label)
    return fallback, FALLBACK_SOURCE
