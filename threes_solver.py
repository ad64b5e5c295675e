# threes_solver.py
"""
Exact solver for 2x3 Threes (tiles 1..3 from a 3-tile bag, no bonus tiles).

The whole game tree is explored once, in the constructor, by mutual recursion
between before-states (player slides) and after-states (a tile drops in on the
side the slide vacated). Every node's (min, avg, max) score is memoized in two
dense tables indexed by the packed board:

    before[index, hint - 1]                  -> (min, avg, max)
    after[index, hint - 1, last_direction]   -> (min, avg, max)

NaN in a table entry means "never computed". `Solver.solve` is a pure lookup.
"""

from __future__ import annotations
import enum
import logging
import math
import sys
import time
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from threes_engine import (
    Board,
    CELLS,
    DIRECTIONS,
    FULL_BAG,
    ILLEGAL,
    MAX_INDEX,
    MAX_TILE,
    bag_ranks,
    eligible_positions,
    place_index,
    slide_index,
    slide_tables,
)

logger = logging.getLogger(__name__)

Triple = Tuple[float, float, float]

# ---- Answers ----

@dataclass(frozen=True)
class Answer:
    min: float = math.nan
    avg: float = math.nan
    max: float = math.nan

    @property
    def valid(self) -> bool:
        return not math.isnan(self.avg)

    def __add__(self, reward: float) -> "Answer":
        return Answer(self.min + reward, self.avg + reward, self.max + reward)

    def __str__(self) -> str:
        if not self.valid:
            return "-1"
        return f"{self.min:g} {self.avg:g} {self.max:g}"

NO_ANSWER = Answer()

class StateType(enum.Enum):
    BEFORE = "b"
    AFTER = "a"

    @classmethod
    def parse(cls, text: str) -> "StateType":
        for t in cls:
            if text[:1] == t.value:
                return t
        raise ValueError(f"unknown state type {text!r}")

# ---- Config ----

@dataclass
class SolverConfig:
    recursion_limit: int = 20_000
    dtype: type = np.float32

@dataclass
class SolverStats:
    before_states: int = 0
    after_states: int = 0
    seconds: float = 0.0

# ---- Solver ----

class Solver:
    def __init__(self, config: Optional[SolverConfig] = None):
        self.config = config or SolverConfig()
        self.stats = SolverStats()
        self.table_b = np.full((MAX_INDEX, 3, 3), np.nan, dtype=self.config.dtype)
        self.table_a = np.full((MAX_INDEX, 3, len(DIRECTIONS), 3), np.nan, dtype=self.config.dtype)
        self._fill()

    # ---------- Fill phase ----------

    def _fill(self) -> None:
        slide_tables()  # JIT + build before timing the fill

        logger.info("Exploring the 2x3 game tree (%d board indices)", MAX_INDEX)
        old_limit = sys.getrecursionlimit()
        sys.setrecursionlimit(max(old_limit, self.config.recursion_limit))
        t0 = time.perf_counter()
        try:
            for pos in range(CELLS):
                for tile in (1, 2, 3):
                    for hint in (1, 2, 3):
                        if tile == hint:
                            continue
                        _, index = place_index(0, pos, tile)
                        self._before_value(index, hint, FULL_BAG ^ (1 << hint) ^ (1 << tile))
        finally:
            sys.setrecursionlimit(old_limit)
        self.stats.seconds = time.perf_counter() - t0
        logger.info("Solved %d before-states and %d after-states in %.2fs",
                    self.stats.before_states, self.stats.after_states, self.stats.seconds)

    def _before_value(self, index: int, hint: int, tile_bag: int) -> Triple:
        entry = self.table_b[index, hint - 1]
        if not math.isnan(entry[1]):
            return float(entry[0]), float(entry[1]), float(entry[2])

        best: Optional[Triple] = None
        for op in DIRECTIONS:
            reward, nxt = slide_index(index, op)
            if reward == ILLEGAL:
                continue
            lo, avg, hi = self._after_value(nxt, hint, tile_bag, op)
            if best is None or avg + reward > best[1]:
                best = (lo + reward, avg + reward, hi + reward)

        if best is None:
            best = (0.0, 0.0, 0.0)
        self.table_b[index, hint - 1] = best
        self.stats.before_states += 1
        return best

    def _after_value(self, index: int, hint: int, tile_bag: int, last_op: int) -> Triple:
        entry = self.table_a[index, hint - 1, last_op]
        if not math.isnan(entry[1]):
            return float(entry[0]), float(entry[1]), float(entry[2])

        if tile_bag == 0:
            tile_bag = FULL_BAG

        count = 0
        total = 0.0
        lo = math.inf
        hi = -math.inf
        for pos in eligible_positions(last_op):
            reward, placed = place_index(index, pos, hint)
            if reward == ILLEGAL:
                continue
            for tile in bag_ranks(tile_bag):
                b_lo, b_avg, b_hi = self._before_value(placed, tile, tile_bag ^ (1 << tile))
                count += 1
                total += b_avg + reward
                lo = min(lo, b_lo + reward)
                hi = max(hi, b_hi + reward)

        value = (lo, total / count, hi) if count else (0.0, 0.0, 0.0)
        self.table_a[index, hint - 1, last_op] = value
        self.stats.after_states += 1
        return value

    # ---------- Queries ----------

    def solve(self, state: Board, state_type: StateType = StateType.BEFORE,
              last_direction: Optional[int] = None) -> Answer:
        """
        Look up the precomputed answer for `state` (its `info` is the hint).
        Never computes anything; returns NO_ANSWER for boards outside the table.
        """
        if not state.encodable():
            logger.debug("No answer: %r has a rank >= %d", state, MAX_TILE)
            return NO_ANSWER
        index = state.index()
        hint = int(state.info)
        if hint not in (1, 2, 3):
            logger.debug("No answer: hint %r is not a basic tile", state.info)
            return NO_ANSWER

        if state_type is StateType.BEFORE:
            return self._lookup(self.table_b[index, hint - 1])

        if last_direction is not None:
            if last_direction not in DIRECTIONS:
                return NO_ANSWER
            return self._lookup(self.table_a[index, hint - 1, last_direction])

        logger.warning("After-state query without a last direction; "
                       "returning the first populated direction for %r", state)
        for op in DIRECTIONS:
            answer = self._lookup(self.table_a[index, hint - 1, op])
            if answer.valid:
                return answer
        return NO_ANSWER

    @staticmethod
    def _lookup(entry: np.ndarray) -> Answer:
        if math.isnan(entry[1]):
            return NO_ANSWER
        return Answer(float(entry[0]), float(entry[1]), float(entry[2]))

    def direction_values(self, state: Board) -> Dict[int, Answer]:
        """reward + after-answer for every legal slide of a before-state."""
        values: Dict[int, Answer] = {}
        for op in DIRECTIONS:
            after = state.copy()
            reward = after.slide(op)
            if reward == ILLEGAL:
                continue
            answer = self.solve(after, StateType.AFTER, last_direction=op)
            if answer.valid:
                values[op] = answer + reward
        return values

    def best_direction(self, state: Board) -> Optional[int]:
        values = self.direction_values(state)
        if not values:
            return None
        return max(values, key=lambda op: (values[op].avg, -op))
