"""Placeholder 24h movement figures for fiat pairs.

None of the configured fiat sources publish intraday history, so the
market pulse cards show simulated changes for fiat pairs. Everything
random in the service lives here, and every figure it produces is
marked ``synthetic`` in the output.
"""

from __future__ import annotations

import random

from ratebridge.core.models import Trend


class SyntheticEstimator:
    """Random percentage changes within ``±amplitude``.

    Pass ``seed`` for reproducible output in tests.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._random = random.Random(seed)

    def change(self, amplitude: float) -> float:
        return round(self._random.uniform(-amplitude, amplitude), 2)

    @staticmethod
    def trend(change: float) -> Trend:
        return Trend.UP if change > 0 else Trend.DOWN
