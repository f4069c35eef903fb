"""Deterministic random sources for sampling decisions."""

from __future__ import annotations

import hashlib
import random
from typing import Any, Optional


class SeedManager:
    """Derive per-component random generators from one master seed.

    Profiling decisions normally use an unseeded generator. A master seed
    makes them reproducible (tests, replayed load runs) without touching the
    global ``random`` module the host program may rely on.

    Usage:
        rng = SeedManager(42).create_random_state("sampling_decision", "billing")
    """

    def __init__(self, master_seed: Optional[int] = None) -> None:
        self.master_seed = master_seed

    def derive_seed(self, *components: Any) -> Optional[int]:
        """Return a positive 31-bit seed for ``components``, or None if unseeded.

        The seed is the first four bytes of SHA-256 over
        ``"<master>:<component>:..."``, so it depends on component order.
        """
        if self.master_seed is None:
            return None

        seed_input = f"{self.master_seed}:" + ":".join(str(c) for c in components)
        digest = hashlib.sha256(seed_input.encode()).digest()
        return int.from_bytes(digest[:4], byteorder="big") & 0x7FFFFFFF

    def create_random_state(self, *components: Any) -> random.Random:
        """Return a seeded ``random.Random`` (unseeded without a master seed)."""
        seed = self.derive_seed(*components)
        return random.Random(seed) if seed is not None else random.Random()
