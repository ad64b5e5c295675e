# threes_agents.py
"""
Players and the tile-dropping environment for 2x3 Threes self-play.

Players share one capability: `choose(board) -> Optional[Action]`, returning a
legal slide or None when the board is stuck.

- RandomPlayer:   shuffle the four directions, take the first legal one.
- ScriptedPlayer: cycle through a fixed direction order, skipping illegal moves.
- SolverPlayer:   take the direction with the best precomputed expected score.

Engine directions: 0=U, 1=R, 2=D, 3=L
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple
import random

from threes_engine import (
    Action,
    Board,
    DIRECTIONS,
    FULL_BAG,
    ILLEGAL,
    TileBag,
    eligible_positions,
)
from threes_solver import Solver

# --------------------
# Players
# --------------------

class Player(Protocol):
    def choose(self, board: Board) -> Optional[Action]: ...

def _is_legal(board: Board, direction: int) -> bool:
    return board.copy().slide(direction) != ILLEGAL

@dataclass
class RandomPlayer:
    rng: random.Random

    def choose(self, board: Board) -> Optional[Action]:
        order = list(DIRECTIONS)
        self.rng.shuffle(order)
        for op in order:
            if _is_legal(board, op):
                return Action.slide(op)
        return None

@dataclass
class ScriptedPlayer:
    move_order: Tuple[int, ...] = (3, 0, 1, 2)  # L, U, R, D
    current_index: int = 0

    def choose(self, board: Board) -> Optional[Action]:
        for k in range(len(self.move_order)):
            op = self.move_order[(self.current_index + k) % len(self.move_order)]
            if _is_legal(board, op):
                self.current_index = (self.current_index + k + 1) % len(self.move_order)
                return Action.slide(op)
        return None

@dataclass
class SolverPlayer:
    solver: Solver

    def choose(self, board: Board) -> Optional[Action]:
        op = self.solver.best_direction(board)
        if op is None:
            # outside the solved range; any legal slide keeps the game going
            for op in DIRECTIONS:
                if _is_legal(board, op):
                    return Action.slide(op)
            return None
        return Action.slide(op)

# --------------------
# Environment
# --------------------

@dataclass
class RandomEnvironment:
    """Drops the hinted tile on a random eligible empty cell and draws the next hint from the bag."""
    rng: random.Random
    bag: Optional[TileBag] = None

    def __post_init__(self):
        if self.bag is None:
            self.bag = TileBag(self.rng)

    def reset(self) -> Tuple[int, Board]:
        self.bag.bits = FULL_BAG
        board = Board()
        tile = self.bag.draw()
        reward = board.place(self.rng.choice(board.empty_cells()), tile)
        board.info = self.bag.draw()
        return reward, board

    def choose(self, after: Board, last_direction: int) -> Optional[Action]:
        cells = [p for p in eligible_positions(last_direction) if after[p] == 0]
        if not cells:
            return None
        return Action.place(self.rng.choice(cells), after.info)

    def step(self, after: Board, last_direction: int) -> Tuple[int, Board]:
        action = self.choose(after, last_direction)
        if action is None:
            return ILLEGAL, after
        reward, board = action.apply(after)
        board.info = self.bag.draw()
        return reward, board

# --------------------
# Episode loop
# --------------------

@dataclass
class EpisodeResult:
    score: int
    steps: int
    max_value: int
    board: Board

def play_episode(player: Player, env: RandomEnvironment, max_steps: int = 10_000) -> EpisodeResult:
    """
    Run one game: the environment places the opening tile, then the player slides
    and the environment drops the hinted tile until the player is stuck.
    Score is the sum of every slide and placement reward.
    """
    score, board = env.reset()
    step = 0
    while step < max_steps:
        action = player.choose(board)
        if action is None:
            break
        reward, after = action.apply(board)
        if reward == ILLEGAL:
            break
        score += reward
        reward, board = env.step(after, action.direction)
        if reward == ILLEGAL:
            board = after
            break
        score += reward
        step += 1
    return EpisodeResult(score=score, steps=step, max_value=board.max_value(), board=board)
