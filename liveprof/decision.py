"""Per-execution decision whether to profile, and under which label.

Two Bernoulli trials run in sequence. The first (probability ``1/divider``)
profiles under the caller's own label. Only when it fails does the second
(probability ``1/total_divider``) run, profiling under the shared
``"All"`` label. At most one of them applies per invocation, so the effective
rate is ``1/D + (D-1)/D * 1/T``.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from liveprof.model import AGGREGATE_LABEL


class DecisionOutcome(Enum):
    NOOP = "noop"
    OWN = "own"
    AGGREGATE = "aggregate"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Decision:
    """Result of one sampling decision.

    Attributes:
        enable: True when a new capture must begin.
        label: Label the capture is stored under.
        outcome: Which branch produced the decision.
    """

    enable: bool
    label: str
    outcome: DecisionOutcome


class SamplingDecision:
    """Sampling decision engine with an injectable random source.

    Args:
        rng: Generator used for both trials. Defaults to a fresh unseeded
            ``random.Random``; pass a seeded one for reproducible decisions.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng if rng is not None else random.Random()

    def need_to_start(self, divider: int) -> bool:
        """One trial: draw uniformly from ``[1, divider]`` and hit on 1."""
        return self.rng.randint(1, divider) == 1

    def decide(
        self,
        divider: int,
        total_divider: int,
        label: str,
        *,
        has_backend: bool = True,
        active: bool = False,
    ) -> Decision:
        """Decide whether to start a capture.

        Args:
            divider: Reciprocal of the own-label sampling probability.
            total_divider: Reciprocal of the aggregate-label probability.
            label: Caller-supplied label.
            has_backend: Whether a capture backend is selected.
            active: Whether a capture is already running.

        Returns:
            The decision. ``NOOP`` means nothing must start and the caller
            reports success (idempotent start).
        """
        if not has_backend or active:
            return Decision(False, label, DecisionOutcome.NOOP)
        if self.need_to_start(divider):
            return Decision(True, label, DecisionOutcome.OWN)
        if self.need_to_start(total_divider):
            return Decision(True, AGGREGATE_LABEL, DecisionOutcome.AGGREGATE)
        return Decision(False, label, DecisionOutcome.SKIPPED)
