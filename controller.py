"""
controller.py
-------------
Answers solver queries read from text, one state per line:

    b 0 1 2 3 0 0 +2        before-state, tile values row by row, hint 2
    a 3 3 0 1 2 0 +1 #L     after-state reached by sliding left
    a 3 3 0 1 2 0 +1        after-state, last slide unknown

Each line is echoed followed by "= min avg max", or "= -1" when the solver has
no answer. A hint of "+x" means no hint.
"""

from __future__ import annotations
import argparse
import logging
import sys
from typing import List, Optional, TextIO, Tuple

from threes_engine import Board, DIRECTION_NAMES, CELLS
from threes_solver import Answer, Solver, StateType

logger = logging.getLogger(__name__)

# ---------- Helpers ----------

def parse_state(line: str) -> Tuple[StateType, Board, Optional[int]]:
    """Parse one query line into (state type, board with hint, last direction or None)."""
    tokens = line.split()
    if not tokens:
        raise ValueError("empty query")
    state_type = StateType.parse(tokens[0])

    values: List[int] = []
    hint = 0
    last_direction: Optional[int] = None
    for tok in tokens[1:]:
        if tok.startswith("+"):
            hint = 0 if tok[1:] in ("x", "") else int(tok[1:])
        elif tok.startswith("#"):
            name = tok[1:].upper()
            if name not in DIRECTION_NAMES:
                raise ValueError(f"unknown direction {tok!r}")
            last_direction = DIRECTION_NAMES.index(name)
        else:
            values.append(int(tok))
    if len(values) != CELLS:
        raise ValueError(f"expected {CELLS} tile values, got {len(values)}")
    return state_type, Board.from_values(values, hint), last_direction

def answer_line(solver: Solver, line: str) -> str:
    state_type, board, last_direction = parse_state(line)
    answer: Answer = solver.solve(board, state_type, last_direction)
    return f"{line.strip()} = {answer}"

def run(solver: Solver, src: TextIO, out: TextIO) -> int:
    """Answer every query in `src`; returns the number of malformed lines."""
    errors = 0
    for line in src:
        if not line.strip():
            continue
        try:
            print(answer_line(solver, line), file=out)
        except ValueError as e:
            errors += 1
            print(f"{line.strip()} = ? ({e})", file=out)
    return errors

# ---------- Main ----------

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="2x3 Threes exact solver: answer b/a state queries")
    ap.add_argument("--input", metavar="FILE", default=None, help="Query file (default: stdin)")
    ap.add_argument("--verbose", action="store_true", help="Log solver progress")
    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    solver = Solver()
    if args.input:
        with open(args.input) as f:
            errors = run(solver, f, sys.stdout)
    else:
        errors = run(solver, sys.stdin, sys.stdout)
    if errors:
        logger.warning("%d malformed queries skipped", errors)
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
