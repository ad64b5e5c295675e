# solver_bot.py
"""
Batch self-play for 2x3 Threes.

- Plays N games with one of the policies in threes_agents (random, scripted, solver).
- The solver policy builds the full value tables once (slow, ~100 MB) and then
  plays each move by table lookup.
- Prints a summary (low/median/mean/high score + max-tile hit rates) and can
  plot scores and largest tiles with matplotlib.
"""

from __future__ import annotations
import argparse
import logging
import os
import random
import statistics
import time
from dataclasses import dataclass
from typing import List, Optional

import matplotlib
import matplotlib.pyplot as plt
import numpy as np

from threes_agents import (
    Player,
    RandomEnvironment,
    RandomPlayer,
    ScriptedPlayer,
    SolverPlayer,
    play_episode,
)
from threes_engine import format_board
from threes_solver import Solver

logger = logging.getLogger(__name__)

POLICIES = ("random", "scripted", "solver")

@dataclass
class PlayParams:
    policy: str = "solver"
    games: int = 10
    seed: Optional[int] = 3000
    max_steps: int = 10_000
    verbose: bool = False

def make_player(policy: str, rng: random.Random, solver: Optional[Solver] = None) -> Player:
    if policy == "random":
        return RandomPlayer(rng)
    if policy == "scripted":
        return ScriptedPlayer()
    if policy == "solver":
        return SolverPlayer(solver if solver is not None else Solver())
    raise ValueError(f"unknown policy {policy!r}; expected one of {POLICIES}")

def run_games(params: PlayParams, solver: Optional[Solver] = None):
    """Returns (scores, max_tiles)."""
    rng = random.Random(params.seed)
    player = make_player(params.policy, rng, solver)
    env = RandomEnvironment(rng)
    logger.info("Playing %d games with the %s policy", params.games, params.policy)

    scores: List[int] = []
    max_tiles: List[int] = []
    for i in range(params.games):
        result = play_episode(player, env, params.max_steps)
        scores.append(result.score)
        max_tiles.append(result.max_value)
        if params.verbose:
            print(f"\nGame {i + 1}: score {result.score} in {result.steps} moves")
            print(format_board(result.board))
    return scores, max_tiles

# ---- Summary helpers ----

_TILE_THRESHOLDS = [6, 12, 24, 48]

def _format_total_time(seconds: float) -> str:
    """Format as HH:MM:SS.fff"""
    t = seconds
    h = int(t // 3600); t -= 3600 * h
    m = int(t // 60);   t -= 60 * m
    return f"{h:02d}:{m:02d}:{t:06.3f}"

def print_summary(scores: List[int], max_tiles: List[int], total_seconds: float):
    n = len(scores)
    print(f"{n} games completed!")
    print(f"Total time: {_format_total_time(total_seconds)}")
    if n == 0:
        return

    print(f"Low Score: {min(scores)}")
    print(f"Median Score: {statistics.median(scores)}")
    print(f"Mean Score: {statistics.mean(scores):.3f}")
    print(f"High Score: {max(scores)}")

    for t in _TILE_THRESHOLDS:
        count = sum(1 for v in max_tiles if v >= t)
        pct = int(round(100.0 * count / n))
        print(f"% of games with at least a {t}: {pct}%")

# ---- Plotting helpers ----

def plot_results(scores, max_tiles, show=True, outdir=None):
    """
    Two figures: scores per game (one bar per distinct score, mean marked) and
    how many games ended with each largest tile. Saved as PNGs under outdir.
    """
    if not scores:
        print("No scores to plot.")
        return []

    s = np.asarray(scores, dtype=float)
    values, counts = np.unique(s, return_counts=True)
    fig_scores, ax = plt.subplots()
    ax.bar(values, counts, width=max(1.0, np.ptp(values) / 50), color="tab:blue")
    ax.axvline(s.mean(), color="black", linestyle="--", linewidth=1,
               label=f"Mean {s.mean():.1f}")
    ax.set(title=f"Final scores over {len(s)} games", xlabel="Score", ylabel="Games")
    ax.legend()
    fig_scores.tight_layout()

    tiles, tile_counts = np.unique(np.asarray(max_tiles, dtype=int), return_counts=True)
    fig_tiles, ax = plt.subplots()
    ax.bar([str(t) for t in tiles], 100.0 * tile_counts / len(max_tiles), color="tab:orange")
    ax.set(title="Largest tile reached", xlabel="Tile", ylabel="% of games")
    fig_tiles.tight_layout()

    figures = {"scores.png": fig_scores, "max_tiles.png": fig_tiles}
    paths = []
    if outdir:
        os.makedirs(outdir, exist_ok=True)
        for name, fig in figures.items():
            path = os.path.join(outdir, name)
            fig.savefig(path, dpi=150)
            paths.append(path)
        print("Saved plots:", ", ".join(paths))

    if show:
        plt.show()
    else:
        for fig in figures.values():
            plt.close(fig)
    return paths

# ---- CLI ----

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="2x3 Threes self-play (random / scripted / exact solver)")
    ap.add_argument("--policy", choices=POLICIES, default="solver")
    ap.add_argument("--seed", type=int, default=3000)
    ap.add_argument("--steps", type=int, default=10_000, help="Max moves per game")
    ap.add_argument("--games", type=int, default=10, help="Number of games to run")
    ap.add_argument("--quiet", action="store_true", help="Suppress per-game boards")
    ap.add_argument("--verbose", action="store_true", help="Log solver progress")
    ap.add_argument("--plot", action="store_true", help="Show result plots after runs")
    ap.add_argument("--save-plots", metavar="DIR", default=None, help="Save plots to DIR")
    ap.add_argument("--no-show", action="store_true", help="Create/save plots without opening a window")
    return ap

def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    params = PlayParams(policy=args.policy, games=args.games, seed=args.seed,
                        max_steps=args.steps, verbose=not args.quiet)
    t0 = time.perf_counter()
    scores, max_tiles = run_games(params)
    print_summary(scores, max_tiles, time.perf_counter() - t0)

    if args.plot or args.save_plots is not None:
        if args.no_show:
            matplotlib.use("Agg")
        plot_results(scores, max_tiles, show=not args.no_show, outdir=args.save_plots)
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
