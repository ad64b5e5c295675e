# threes_engine.py
# 2x3 Threes engine for the exact solver: base-9 board index + numba-built slide LUTs.
# Python 3.10+

from __future__ import annotations
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, List, Optional, Sequence, Tuple
import random
import numpy as np
from numba import njit  # type: ignore

ROWS, COLS = 2, 3
CELLS = ROWS * COLS
MAX_TILE = 9                   # ranks 0..8 are encodable
MAX_INDEX = MAX_TILE ** CELLS  # 531441
ILLEGAL = -1
FULL_BAG = 0b1110              # bit (1 << rank) for ranks 1, 2, 3

UP, RIGHT, DOWN, LEFT = 0, 1, 2, 3
DIRECTIONS: Tuple[int, ...] = (UP, RIGHT, DOWN, LEFT)
DIRECTION_NAMES = ("U", "R", "D", "L")

TILE_VALUES: Tuple[int, ...] = (0, 1, 2, 3, 6, 12, 24, 48, 96, 192, 384, 768, 1536, 3072, 6144)

# weight of each cell in the board index, cell 0 most significant
_PLACE_VALUE: Tuple[int, ...] = tuple(MAX_TILE ** (CELLS - 1 - i) for i in range(CELLS))

# cells left empty by each slide, where the next tile may drop in
_VACATED: Tuple[Tuple[int, ...], ...] = (
    (3, 4, 5),  # up    -> bottom row
    (0, 3),     # right -> left column
    (0, 1, 2),  # down  -> top row
    (2, 5),     # left  -> right column
)

# ---------------------------
# Rank/value conversions
# ---------------------------

def rank_to_value(rank: int) -> int:
    if rank == 0: return 0
    if rank == 1: return 1
    if rank == 2: return 2
    return 3 << (rank - 3)

def value_to_rank(value: int) -> int:
    if value in (0, 1, 2):
        return value
    if value < 3 or value % 3:
        raise ValueError(f"{value} is not a tile value")
    k = value // 3
    if k & (k - 1):
        raise ValueError(f"{value} is not a tile value")
    return 3 + k.bit_length() - 1

def rank_score(rank: int) -> int:
    return 0 if rank < 3 else 3 ** (rank - 2)

def merge_rank(hold: int, tile: int) -> int:
    """Rank produced by sliding `tile` onto `hold`, or 0 if they do not merge."""
    if hold == 0 or tile == 0: return 0
    if hold + tile == 3 and hold < 3: return 3
    if hold >= 3 and hold == tile: return hold + 1
    return 0

# Score table
SCORE_LUT: Tuple[int, ...] = tuple(rank_score(r) for r in range(16))

# ---------------------------
# Python slide primitive
# ---------------------------

def _slide_line_left(line: List[int]) -> int:
    # one-step slide: each tile moves at most one cell toward index 0
    score = 0
    for c in range(1, len(line)):
        tile, hold = line[c], line[c - 1]
        if tile == 0:
            continue
        if hold == 0:
            line[c - 1], line[c] = tile, 0
            continue
        merged = merge_rank(hold, tile)
        if merged:
            line[c - 1], line[c] = merged, 0
            score += rank_score(merged)
    return score

# ---------------------------
# Board
# ---------------------------

class Board:
    """
    Array-based 2x3 board plus the hint ("info") of the next tile to be placed.

    index (1-d form):
     (0)  (1)  (2)
     (3)  (4)  (5)

    Cells hold ranks (0 = empty, 1, 2, 3 -> 1, 2, 3, 4 -> 6, ...). Equality only
    looks at the cells, the same way the game compares positions.
    """

    __slots__ = ("tile", "info")

    def __init__(self, grid: Optional[Iterable] = None, info: int = 0):
        if grid is None:
            self.tile = np.zeros((ROWS, COLS), dtype=np.int64)
        else:
            self.tile = np.array(grid, dtype=np.int64).reshape(ROWS, COLS)
        self.info = info

    @staticmethod
    def from_values(values: Sequence[int], info: int = 0) -> "Board":
        if len(values) != CELLS:
            raise ValueError(f"expected {CELLS} tile values, got {len(values)}")
        return Board([value_to_rank(v) for v in values], info)

    @staticmethod
    def from_index(index: int, info: int = 0) -> "Board":
        if not 0 <= index < MAX_INDEX:
            raise ValueError(f"board index {index} outside [0, {MAX_INDEX})")
        cells = [0] * CELLS
        for i in range(CELLS - 1, -1, -1):
            index, cells[i] = divmod(index, MAX_TILE)
        return Board(cells, info)

    def copy(self) -> "Board":
        b = Board.__new__(Board)
        b.tile = self.tile.copy()
        b.info = self.info
        return b

    # ---------- Cell access ----------

    def __getitem__(self, pos: int) -> int:
        return int(self.tile[pos // COLS, pos % COLS])

    def __setitem__(self, pos: int, rank: int) -> None:
        self.tile[pos // COLS, pos % COLS] = rank

    def cells(self) -> Tuple[int, ...]:
        return tuple(int(v) for v in self.tile.ravel())

    def empty_cells(self) -> List[int]:
        return [i for i, v in enumerate(self.cells()) if v == 0]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return np.array_equal(self.tile, other.tile)

    __hash__ = None  # mutable

    def __repr__(self) -> str:
        return f"Board({list(self.cells())}, info={self.info})"

    # ---------- Encoding ----------

    def encodable(self) -> bool:
        return bool((self.tile < MAX_TILE).all() and (self.tile >= 0).all())

    def index(self) -> int:
        if not self.encodable():
            raise ValueError(f"{self!r} has a rank outside [0, {MAX_TILE})")
        code = 0
        for v in self.cells():
            code = code * MAX_TILE + v
        return code

    # ---------- Actions ----------

    def place(self, pos: int, rank: int) -> int:
        """
        Place a tile of `rank` on the empty cell `pos` (1-d form index).
        Returns 3 (rank 3) or 0 (rank 1, 2) if valid, ILLEGAL otherwise.
        """
        if not 0 <= pos < CELLS: return ILLEGAL
        if rank not in (1, 2, 3): return ILLEGAL
        if self[pos] != 0: return ILLEGAL
        self[pos] = rank
        return 3 if rank == 3 else 0

    def slide(self, direction: int) -> int:
        """Apply a slide (0=U, 1=R, 2=D, 3=L); returns its reward or ILLEGAL if nothing moved."""
        if direction == UP: return self.slide_up()
        if direction == RIGHT: return self.slide_right()
        if direction == DOWN: return self.slide_down()
        if direction == LEFT: return self.slide_left()
        raise ValueError("direction must be 0..3")

    def slide_left(self) -> int:
        prev = self.tile.copy()
        score = 0
        for r in range(self.tile.shape[0]):
            line = [int(v) for v in self.tile[r]]
            score += _slide_line_left(line)
            self.tile[r] = line
        return score if not np.array_equal(self.tile, prev) else ILLEGAL

    def slide_right(self) -> int:
        self.reflect_horizontal()
        score = self.slide_left()
        self.reflect_horizontal()
        return score

    def slide_up(self) -> int:
        self.rotate_left()
        score = self.slide_left()
        self.rotate_right()
        return score

    def slide_down(self) -> int:
        self.rotate_right()
        score = self.slide_left()
        self.rotate_left()
        return score

    # ---------- Geometry (a quarter turn leaves a 3x2 grid) ----------

    def transpose(self) -> None:
        self.tile = np.ascontiguousarray(self.tile.T)

    def reflect_horizontal(self) -> None:
        self.tile = np.ascontiguousarray(self.tile[:, ::-1])

    def reflect_vertical(self) -> None:
        self.tile = np.ascontiguousarray(self.tile[::-1, :])

    def rotate(self, r: int = 1) -> None:
        """Rotate clockwise `r` quarter turns."""
        r %= 4
        if r == 1: self.rotate_right()
        elif r == 2: self.reverse()
        elif r == 3: self.rotate_left()

    def rotate_right(self) -> None:  # clockwise
        self.transpose()
        self.reflect_horizontal()

    def rotate_left(self) -> None:  # counterclockwise
        self.transpose()
        self.reflect_vertical()

    def reverse(self) -> None:
        self.reflect_horizontal()
        self.reflect_vertical()

    # ---------- Utilities ----------

    def max_value(self) -> int:
        return rank_to_value(int(self.tile.max()))

    def score(self) -> int:
        return sum(SCORE_LUT[v] for v in self.cells())

def format_board(board: Board) -> str:
    rows = []
    for r in range(ROWS):
        row = [f"{rank_to_value(board[r * COLS + c]):>4}" for c in range(COLS)]
        rows.append(" ".join(row))
    hint = board.info if board.info else "x"
    return "\n".join(rows) + f"\nNext: {hint}"

def eligible_positions(direction: int) -> Tuple[int, ...]:
    return _VACATED[direction]

# ---------------------------
# Actions
# ---------------------------

@dataclass(frozen=True)
class Action:
    """Either "slide in direction D" or "place rank R at cell C"; the default is a null action."""
    kind: str = "none"
    direction: int = -1
    position: int = -1
    rank: int = 0

    @staticmethod
    def slide(direction: int) -> "Action":
        if direction not in DIRECTIONS:
            raise ValueError("direction must be 0..3")
        return Action(kind="slide", direction=direction)

    @staticmethod
    def place(position: int, rank: int) -> "Action":
        return Action(kind="place", position=position, rank=rank)

    def apply(self, board: Board) -> Tuple[int, Board]:
        """Return (reward, resulting board); `board` itself is left untouched."""
        after = board.copy()
        if self.kind == "slide":
            return after.slide(self.direction), after
        if self.kind == "place":
            return after.place(self.position, self.rank), after
        return ILLEGAL, after

    def __str__(self) -> str:
        if self.kind == "slide":
            return "#" + DIRECTION_NAMES[self.direction]
        if self.kind == "place":
            return f"{self.position}{rank_to_value(self.rank)}"
        return "??"

# ---------------------------
# Tile bag
# ---------------------------

def bag_ranks(bag: int) -> List[int]:
    return [t for t in (1, 2, 3) if bag & (1 << t)]

@dataclass
class TileBag:
    """Each of 1, 2, 3 comes out exactly once per three draws."""
    rng: random.Random
    bits: int = FULL_BAG

    def ranks(self) -> List[int]:
        return bag_ranks(self.bits)

    def remove(self, rank: int) -> None:
        self.bits &= ~(1 << rank)
        if not self.bits & FULL_BAG:
            self.bits = FULL_BAG

    def draw(self) -> int:
        rank = self.rng.choice(self.ranks())
        self.remove(rank)
        return rank

# ---------------------------
# Packed-index kernels (Numba)
# ---------------------------

# per direction: lines of cells, listed from the edge tiles slide toward; -1 pads
_LINES = np.array([
    [[0, 3, -1], [1, 4, -1], [2, 5, -1]],    # up
    [[2, 1, 0], [5, 4, 3], [-1, -1, -1]],    # right
    [[3, 0, -1], [4, 1, -1], [5, 2, -1]],    # down
    [[0, 1, 2], [3, 4, 5], [-1, -1, -1]],    # left
], dtype=np.int64)

_MERGE_SCORE = np.asarray(SCORE_LUT, dtype=np.int64)

@njit(cache=True)
def _slide_cells_nb(cells: np.ndarray, lines: np.ndarray, merge_score: np.ndarray) -> int:
    """One-step slide of a flat cell array along `lines`; returns reward or -1 if nothing moved."""
    score = 0
    moved = False
    for k in range(lines.shape[0]):
        for j in range(1, lines.shape[1]):
            dst = lines[k, j - 1]
            src = lines[k, j]
            if dst < 0 or src < 0:
                continue
            tile = cells[src]
            hold = cells[dst]
            if tile == 0:
                continue
            if hold == 0:
                cells[dst] = tile
                cells[src] = 0
                moved = True
            elif tile >= 3 and tile == hold:
                cells[dst] = tile + 1
                cells[src] = 0
                score += merge_score[tile + 1]
                moved = True
            elif tile + hold == 3:
                cells[dst] = 3
                cells[src] = 0
                score += merge_score[3]
                moved = True
    if not moved:
        return -1
    return score

@njit(cache=True)
def _build_slide_table_nb(lines: np.ndarray, merge_score: np.ndarray,
                          max_tile: int, n_cells: int, n_index: int) -> Tuple[np.ndarray, np.ndarray]:
    next_index = np.empty((4, n_index), dtype=np.int32)
    rewards = np.empty((4, n_index), dtype=np.int32)
    cells = np.zeros(n_cells, dtype=np.int64)
    for index in range(n_index):
        for op in range(4):
            rest = index
            for i in range(n_cells - 1, -1, -1):
                cells[i] = rest % max_tile
                rest //= max_tile
            score = _slide_cells_nb(cells, lines[op], merge_score)
            code = 0
            for i in range(n_cells):
                if cells[i] >= max_tile:
                    score = -1  # merged past the encodable range
                code = code * max_tile + cells[i]
            if score < 0:
                next_index[op, index] = -1
                rewards[op, index] = -1
            else:
                next_index[op, index] = code
                rewards[op, index] = score
    return next_index, rewards

@lru_cache(maxsize=None)
def slide_tables() -> Tuple[np.ndarray, np.ndarray]:
    """(next_index, reward) tables of shape (4, MAX_INDEX); -1 marks an illegal slide."""
    next_index, rewards = _build_slide_table_nb(_LINES, _MERGE_SCORE, MAX_TILE, CELLS, MAX_INDEX)
    next_index.setflags(write=False)
    rewards.setflags(write=False)
    return next_index, rewards

def slide_index(index: int, direction: int) -> Tuple[int, int]:
    """Slide a packed board; returns (reward, next_index), reward ILLEGAL if the slide is not legal."""
    next_index, rewards = slide_tables()
    return int(rewards[direction, index]), int(next_index[direction, index])

def place_index(index: int, pos: int, rank: int) -> Tuple[int, int]:
    """Place `rank` on a packed board; returns (reward, next_index), reward ILLEGAL if not legal."""
    if not 0 <= pos < CELLS or rank not in (1, 2, 3):
        return ILLEGAL, index
    weight = _PLACE_VALUE[pos]
    if (index // weight) % MAX_TILE:
        return ILLEGAL, index
    return (3 if rank == 3 else 0), index + rank * weight
