from __future__ import annotations

from typing import Sequence


# Deterministic stub RNG for unit-tests
class FixedRNG:
    """
    Tiny deterministic stand-in for `numpy.random.Generator`.

    Only the subset of the NumPy API required by the production code is
    implemented:

    * `random`
    * `uniform`
    * `integers`

    Draws are taken in order from the *fixed* sequence supplied at
    construction, so results are completely reproducible.
    """

    _buffer: list[float]
    _cursor: int

    def __init__(self, data: Sequence[float]) -> None:
        self._buffer = [float(x) for x in data]
        self._cursor = 0

    # helpers
    def _next(self) -> float:
        if self._cursor >= len(self._buffer):
            raise RuntimeError("FixedRNG exhausted – enlarge the seed vector")
        out = self._buffer[self._cursor]
        self._cursor += 1
        return out

    @property
    def used(self) -> int:
        """Number of draws consumed so far."""
        return self._cursor

    # public API subset
    def random(self) -> float:
        return self._next()

    def uniform(self, low: float = 0.0, high: float = 1.0) -> float:
        """
        Deterministic stand-in for `Generator.uniform`.

        The buffered value is used as-is; it is *not* rescaled into
        ``[low, high)``.
        """
        return self._next()

    def integers(self, low: int, high: int | None = None) -> int:
        """Buffered value truncated to int, wrapped into the requested range."""
        if high is None:
            low, high = 0, low
        return low + int(self._next()) % (high - low)
