"""
Presupuesto de tiempo de una invocacion del worker.
"""
from __future__ import annotations

import time
from typing import Callable


class TimeoutGuard:
    """
    Mide el tiempo transcurrido desde el inicio de la invocacion.

    El presupuesto debe quedar por debajo del limite duro del runtime,
    dejando margen para guardar el checkpoint y re-encolar.
    """

    def __init__(self, budget_s: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._budget_s = budget_s
        self._clock = clock
        self._started_at = clock()

    @property
    def budget_s(self) -> float:
        return self._budget_s

    def elapsed(self) -> float:
        return self._clock() - self._started_at

    def remaining(self) -> float:
        return max(0.0, self._budget_s - self.elapsed())

    def should_stop(self) -> bool:
        return self.elapsed() > self._budget_s
