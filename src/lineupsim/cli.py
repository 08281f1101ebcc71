"""Command-line interface for building and simulating lineups from a players file."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from pydantic import TypeAdapter

from lineupsim.api import lineup_to_response, simulation_to_response, usage_to_response
from lineupsim.errors import EngineError, LineupGenerationPartial
from lineupsim.models import Contest, CutLineModel, Player
from lineupsim.optimizer import OptimizeConfig, build_correlation_matrix, optimize
from lineupsim.simulator import SimulateConfig, simulate


_PLAYERS = TypeAdapter(list[Player])


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate DFS lineups and simulate contest outcomes")
    parser.add_argument("players", type=Path, help="Path to players JSON (a list of player objects)")
    parser.add_argument("--platform", default="DK", help="Platform key (e.g., DK, FD)")
    parser.add_argument("--sport", default="NBA", help="Sport key (e.g., NBA, NFL, GOLF)")
    parser.add_argument("--contest-type", choices=["gpp", "cash"], default="gpp", help="Contest payout type")
    parser.add_argument("--lineups", type=int, default=20, help="Number of lineups to build")
    parser.add_argument("--output", type=Path, default=Path("lineups.json"), help="Output JSON path")
    parser.add_argument(
        "--min-different",
        type=int,
        default=2,
        help="Minimum number of players any two lineups must differ by",
    )
    parser.add_argument(
        "--max-exposure",
        type=float,
        default=None,
        help="Maximum fraction of lineups any single player can appear in (0-1 or percent)",
    )
    parser.add_argument(
        "--correlation-weight",
        type=float,
        default=1.0,
        help="Weight of the stack bonus in the objective (0 disables stacking)",
    )
    parser.add_argument(
        "--optimize-for",
        choices=["ceiling", "floor", "balanced"],
        default="balanced",
        help="Which projection the objective maximizes",
    )
    parser.add_argument("--lock", nargs="*", default=None, help="Player IDs to force into every lineup")
    parser.add_argument("--exclude", nargs="*", default=None, help="Player IDs to remove from consideration")
    parser.add_argument("--max-team", type=int, default=None, help="Maximum players from one team")
    parser.add_argument("--salary-cap", type=int, default=None, help="Override the platform salary cap")
    parser.add_argument("--timeout", type=float, default=None, help="Optimization time budget in seconds")
    parser.add_argument("--seed", type=int, default=0, help="Seed for tie-breaks and simulation draws")
    parser.add_argument("--simulate", action="store_true", help="Simulate the generated lineups")
    parser.add_argument("--iterations", type=int, default=None, help="Simulation iterations")
    parser.add_argument("--workers", type=int, default=None, help="Simulation worker processes")
    parser.add_argument("--field-size", type=int, default=1000, help="Contest field size")
    parser.add_argument("--entry-fee", type=float, default=20.0, help="Contest entry fee")
    parser.add_argument("--cut-line", type=float, default=None, help="Golf cut line mean (per-golfer points)")
    parser.add_argument("--cut-line-std", type=float, default=0.0, help="Golf cut line standard deviation")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress at INFO level")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        players = _PLAYERS.validate_json(args.players.read_bytes())
        cut_line = None
        if args.cut_line is not None:
            cut_line = CutLineModel(mean=args.cut_line, std=args.cut_line_std)
        contest = Contest.for_rules(
            args.sport,
            args.platform,
            contest_type=args.contest_type,
            field_size=args.field_size,
            entry_fee=args.entry_fee,
            salary_cap=args.salary_cap,
            cut_line=cut_line,
        )
        overrides = {} if args.timeout is None else {"timeout_seconds": args.timeout}
        config = OptimizeConfig(
            num_lineups=args.lineups,
            min_different_players=args.min_different,
            max_exposure=args.max_exposure,
            correlation_weight=args.correlation_weight,
            optimize_for=args.optimize_for,
            lock_player_ids=args.lock or [],
            exclude_player_ids=args.exclude or [],
            max_from_one_team=args.max_team,
            seed=args.seed,
            **overrides,
        )
        matrix = build_correlation_matrix(players, contest.sport)
        result = optimize(players, contest, config, matrix=matrix)
    except (EngineError, KeyError, ValueError) as exc:
        print(f"Lineup generation failed: {exc}")
        return 1

    partial_message = None
    try:
        result.raise_for_partial()
    except LineupGenerationPartial as exc:
        partial_message = exc.message

    payload: dict = {
        "sport": contest.sport,
        "platform": contest.platform,
        "lineups": [lineup_to_response(lineup).model_dump() for lineup in result.lineups],
        "player_usage": [usage.model_dump() for usage in usage_to_response(result)],
        "warnings": list(result.warnings),
        "message": partial_message,
    }

    if args.simulate and result.lineups:
        sim_overrides: dict = {"seed": args.seed}
        if args.iterations is not None:
            sim_overrides["iterations"] = args.iterations
        if args.workers is not None:
            sim_overrides["workers"] = args.workers
        run = simulate(result.lineups, matrix, None, contest, SimulateConfig(**sim_overrides), pool=players)
        payload["simulations"] = [simulation_to_response(item).model_dump() for item in run.results]
        print(f"Simulated {run.iterations_completed} iterations for {len(run.results)} lineups")

    args.output.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(f"Wrote {len(result.lineups)} lineups to {args.output}")
    if partial_message:
        print(f"Lineup generation stopped early: {partial_message}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
