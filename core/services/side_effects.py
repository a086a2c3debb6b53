"""Best-effort side effects that run after the primary write commits.

Handlers queue push, email, real-time and blob deletions here while the
transaction is open, then flush once the session has committed. A failing
effect is logged as ``side_effect_failed`` and never reaches the caller.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class _Pending:
    label: str
    func: Callable[..., Any]
    args: tuple
    kwargs: dict
    context: dict[str, Any] = field(default_factory=dict)


class SideEffects:
    def __init__(self) -> None:
        self._pending: list[_Pending] = []
        self.failures: list[str] = []

    def __len__(self) -> int:
        return len(self._pending)

    def add(self, label: str, func: Callable[..., Any], *args, context: dict[str, Any] | None = None, **kwargs) -> None:
        self._pending.append(_Pending(label=label, func=func, args=args, kwargs=kwargs, context=dict(context or {})))

    def discard(self) -> None:
        self._pending.clear()

    async def flush(self) -> int:
        """Run every queued effect once. Returns how many succeeded."""
        pending, self._pending = self._pending, []
        ok = 0
        for item in pending:
            try:
                result = item.func(*item.args, **item.kwargs)
                if inspect.isawaitable(result):
                    await result
                ok += 1
            except Exception as exc:
                self.failures.append(item.label)
                logger.warning(
                    "side_effect_failed",
                    extra={"side_effect": item.label, "error": str(exc), **item.context},
                )
        if pending:
            logger.debug("side_effects_flushed", extra={"total": len(pending), "succeeded": ok})
        return ok
