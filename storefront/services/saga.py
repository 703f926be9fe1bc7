"""Compensation bookkeeping for the checkout saga.

Each step of checkout commits on its own. Whenever a step commits something
that must be undone if a later step fails, it records a compensating action
here; ``compensate()`` runs them newest first.
"""

import logging
from typing import Callable, List, NamedTuple, Tuple

logger = logging.getLogger(__name__)


class CompensationReport(NamedTuple):
    ran: int
    failed: List[str]

    @property
    def complete(self) -> bool:
        return not self.failed


class CheckoutSaga:
    def __init__(self, name: str):
        self.name = name
        self._compensations: List[Tuple[str, Callable[[], object]]] = []

    def record(self, label: str, action: Callable[[], object]) -> None:
        self._compensations.append((label, action))

    @property
    def pending(self) -> List[str]:
        return [label for label, _ in self._compensations]

    def compensate(self) -> CompensationReport:
        """Run every recorded compensation in reverse order.

        A failing compensation is logged and the rest still run. Nothing is
        raised from here: the caller re-raises its original error.
        """
        ran = 0
        failed: List[str] = []

        for label, action in reversed(self._compensations):
            try:
                action()
                ran += 1
            except Exception:
                logger.exception(f"[{self.name}] compensation '{label}' failed")
                failed.append(label)

        self._compensations.clear()

        if failed:
            logger.error(f"[{self.name}] rollback incomplete, left for reconciliation: {failed}")
        else:
            logger.info(f"[{self.name}] rolled back {ran} step(s)")
        return CompensationReport(ran=ran, failed=failed)
