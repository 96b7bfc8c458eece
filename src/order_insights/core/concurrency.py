"""Fan-out/fan-in of independent metric computations."""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_EXCEPTION, Executor, Future, wait
from typing import Any, Callable, Dict, Mapping, Optional

from order_insights.domain.exceptions import DependencyError, InsightsError

logger = logging.getLogger(__name__)


def gather(
    tasks: Mapping[str, Callable[[], Any]],
    *,
    executor: Executor,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """Run ``tasks`` concurrently and return their results by name.

    All-or-nothing: the first failure, or running past ``timeout``, cancels
    whatever has not started yet and fails the whole call.
    """

    futures: Dict[str, Future] = {
        name: executor.submit(task) for name, task in tasks.items()
    }
    done, pending = wait(futures.values(), timeout=timeout, return_when=FIRST_EXCEPTION)

    for name, future in futures.items():
        if future in done and future.exception() is not None:
            _cancel(pending)
            exc = future.exception()
            logger.warning(
                "fan_out_failed", extra={"task": name, "error": str(exc)}
            )
            if isinstance(exc, InsightsError):
                raise exc
            raise DependencyError(
                "Metric computation failed", context={"task": name}
            ) from exc

    if pending:
        _cancel(pending)
        names = sorted(name for name, future in futures.items() if future in pending)
        logger.warning("fan_out_timeout", extra={"tasks": names, "timeout": timeout})
        raise DependencyError(
            "Timed out waiting for metric computations",
            context={"tasks": names, "timeout": timeout},
        )

    return {name: future.result() for name, future in futures.items()}


def _cancel(pending: Any) -> None:
    for future in pending:
        future.cancel()
