"""Tests for players, the random environment, episodes and the batch runner."""
import os
import random

import pytest

from threes_agents import (
    RandomEnvironment,
    RandomPlayer,
    ScriptedPlayer,
    SolverPlayer,
    play_episode,
)
from threes_engine import (
    Board,
    CELLS,
    DIRECTIONS,
    DOWN,
    ILLEGAL,
    LEFT,
    RIGHT,
    UP,
    eligible_positions,
)
import solver_bot


def is_stuck(board):
    return all(board.copy().slide(op) == ILLEGAL for op in DIRECTIONS)


class TestPlayers:
    def test_random_player_picks_legal_slide(self):
        player = RandomPlayer(random.Random(1))
        board = Board([1, 0, 0, 0, 0, 0], info=2)
        for _ in range(20):
            action = player.choose(board)
            assert action.direction in (RIGHT, DOWN)

    def test_stuck_board(self):
        board = Board([1] * CELLS, info=2)
        assert RandomPlayer(random.Random(1)).choose(board) is None
        assert ScriptedPlayer().choose(board) is None

    def test_scripted_player_cycles(self):
        player = ScriptedPlayer(move_order=(LEFT, UP, RIGHT, DOWN))
        board = Board([0, 1, 0, 0, 0, 0], info=2)
        assert player.choose(board).direction == LEFT
        assert player.choose(board).direction == RIGHT  # up is blocked
        assert player.choose(board).direction == DOWN
        assert player.choose(board).direction == LEFT

    def test_solver_player_follows_best_direction(self, solver):
        board = Board([1, 0, 0, 0, 0, 0], info=2)
        action = SolverPlayer(solver).choose(board)
        assert action.direction == solver.best_direction(board)


class TestEnvironment:
    def test_reset(self):
        env = RandomEnvironment(random.Random(4))
        for _ in range(10):
            reward, board = env.reset()
            tiles = [v for v in board.cells() if v]
            assert len(tiles) == 1
            assert board.info in (1, 2, 3)
            assert board.info != tiles[0]
            assert reward == (3 if tiles[0] == 3 else 0)

    def test_step_places_hint_on_vacated_side(self):
        env = RandomEnvironment(random.Random(2))
        _, board = env.reset()
        for op in DIRECTIONS:
            after = board.copy()
            if after.slide(op) == ILLEGAL:
                continue
            reward, nxt = env.step(after, op)
            assert reward != ILLEGAL
            changed = [p for p in range(CELLS) if nxt[p] != after[p]]
            assert len(changed) == 1
            assert changed[0] in eligible_positions(op)
            assert nxt[changed[0]] == after.info
            assert nxt.info in (1, 2, 3)


class TestEpisodes:
    @pytest.mark.parametrize("make_player", [
        lambda rng: RandomPlayer(rng),
        lambda rng: ScriptedPlayer(),
    ])
    def test_episode_runs_until_stuck(self, make_player):
        rng = random.Random(10)
        result = play_episode(make_player(rng), RandomEnvironment(rng))
        assert result.steps > 0
        assert result.score >= 0
        assert is_stuck(result.board)
        assert result.max_value == result.board.max_value()

    def test_max_steps(self):
        rng = random.Random(10)
        result = play_episode(RandomPlayer(rng), RandomEnvironment(rng), max_steps=2)
        assert result.steps <= 2

    def test_solver_episode(self, solver):
        rng = random.Random(3)
        result = play_episode(SolverPlayer(solver), RandomEnvironment(rng))
        assert result.steps > 0
        assert is_stuck(result.board)


class TestSolverBot:
    def test_make_player(self, solver):
        rng = random.Random(0)
        assert isinstance(solver_bot.make_player("random", rng), RandomPlayer)
        assert isinstance(solver_bot.make_player("scripted", rng), ScriptedPlayer)
        assert isinstance(solver_bot.make_player("solver", rng, solver), SolverPlayer)
        with pytest.raises(ValueError):
            solver_bot.make_player("greedy", rng)

    def test_run_games(self):
        params = solver_bot.PlayParams(policy="scripted", games=3, seed=1)
        scores, max_tiles = solver_bot.run_games(params)
        assert len(scores) == len(max_tiles) == 3
        assert all(s >= 0 for s in scores)

    def test_run_games_with_solver(self, solver):
        params = solver_bot.PlayParams(policy="solver", games=2, seed=5)
        scores, _ = solver_bot.run_games(params, solver)
        assert len(scores) == 2

    def test_summary(self, capsys):
        solver_bot.print_summary([3, 9, 12], [3, 6, 12], 1.5)
        out = capsys.readouterr().out
        assert "3 games completed!" in out
        assert "High Score: 12" in out
        assert "% of games with at least a 6: 67%" in out

    def test_plots_saved(self, tmp_path, capsys):
        paths = solver_bot.plot_results([3, 9, 12, 30], [3, 6, 6, 12], show=False, outdir=str(tmp_path))
        assert sorted(os.path.basename(p) for p in paths) == ["max_tiles.png", "scores.png"]
        for p in paths:
            assert os.path.getsize(p) > 0

    def test_no_scores(self, capsys):
        assert solver_bot.plot_results([], [], show=False) == []
        assert "No scores to plot." in capsys.readouterr().out

    def test_main_saves_plots(self, tmp_path, capsys):
        argv = ["--policy", "scripted", "--games", "2", "--quiet", "--no-show", "--save-plots", str(tmp_path)]
        assert solver_bot.main(argv) == 0
        assert (tmp_path / "max_tiles.png").exists()

    def test_main(self, capsys):
        assert solver_bot.main(["--policy", "random", "--games", "2", "--quiet"]) == 0
        assert "2 games completed!" in capsys.readouterr().out
