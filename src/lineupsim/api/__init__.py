"""REST API for the lineup optimizer and contest simulator."""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence

from fastapi import FastAPI, HTTPException

from lineupsim.api.schemas import (
    LineupPlayerIds,
    LineupPlayerResponse,
    LineupResponse,
    OptimizeRequest,
    OptimizeResponse,
    PlayerUsageResponse,
    SimulateRequest,
    SimulateResponse,
    SimulationOptions,
    SimulationResultResponse,
)
from lineupsim.errors import EngineError, LineupGenerationPartial
from lineupsim.models import Contest, Lineup, Player
from lineupsim.optimizer import (
    OptimizationResult,
    OptimizeConfig,
    assign_players_to_slots,
    build_correlation_matrix,
    optimize,
)
from lineupsim.simulator import SimulateConfig, SimulationResult, SimulationRun, simulate


logger = logging.getLogger(__name__)


def lineup_to_response(lineup: Lineup) -> LineupResponse:
    return LineupResponse(
        lineup_id=lineup.lineup_id,
        total_salary=lineup.total_salary,
        total_projection=lineup.total_projection,
        stack_tags=list(lineup.stack_tags),
        players=[
            LineupPlayerResponse(
                player_id=entry.player.player_id,
                name=entry.player.name,
                team=entry.player.team,
                position=entry.player.position,
                slot=entry.slot.name,
                salary=entry.player.salary,
                projection=entry.player.projection,
                ownership=entry.player.ownership,
            )
            for entry in lineup.assignments
        ],
    )


def usage_to_response(result: OptimizationResult) -> List[PlayerUsageResponse]:
    return [
        PlayerUsageResponse(
            player_id=usage.player_id,
            name=usage.name,
            team=usage.team,
            position=usage.position,
            count=usage.count,
            exposure=usage.exposure,
        )
        for usage in result.player_usage()
    ]


def simulation_to_response(result: SimulationResult) -> SimulationResultResponse:
    return SimulationResultResponse(
        lineup_id=result.lineup_id,
        iterations=result.iterations,
        mean_score=result.mean_score,
        std_dev=result.std_dev,
        min_score=result.min_score,
        max_score=result.max_score,
        percentiles={f"{pct:g}": value for pct, value in result.percentiles.items()},
        skewness=result.skewness,
        expected_roi=result.expected_roi,
        cash_rate=result.cash_rate,
        win_rate=result.win_rate,
        top_finish_rates={f"{pct:g}": value for pct, value in result.top_finish_rates.items()},
        cut_probability=result.cut_probability,
        early_termination=result.early_termination,
    )


def _simulate_config(options: SimulationOptions) -> SimulateConfig:
    overrides: dict = {"seed": options.seed, "timeout_seconds": options.timeout_seconds}
    if options.iterations is not None:
        overrides["iterations"] = options.iterations
    if options.percentiles is not None:
        overrides["percentiles"] = options.percentiles
    if options.workers is not None:
        overrides["workers"] = options.workers
    return SimulateConfig(**overrides)


def _contest(
    sport: str,
    platform: str,
    contest_type: str,
    options: SimulationOptions,
    salary_cap: int | None,
) -> Contest:
    return Contest.for_rules(
        sport,
        platform,
        contest_type=contest_type,
        field_size=options.field_size,
        entry_fee=options.entry_fee,
        salary_cap=salary_cap,
        cut_line=options.cut_line,
        tiers=options.tiers,
    )


def _lineups_from_ids(
    requested: Sequence[LineupPlayerIds],
    players: Iterable[Player],
    contest: Contest,
) -> List[Lineup]:
    by_id = {player.player_id: player for player in players}
    lineups: List[Lineup] = []
    for idx, entry in enumerate(requested):
        missing = [pid for pid in entry.player_ids if pid not in by_id]
        if missing:
            raise ValueError(f"Unknown player ids in lineup {idx + 1}: {', '.join(missing)}")
        chosen = sorted((by_id[pid] for pid in dict.fromkeys(entry.player_ids)), key=lambda p: p.player_id)
        if len(chosen) > len(contest.slots):
            raise ValueError(f"Lineup {idx + 1} has {len(chosen)} players for {len(contest.slots)} slots")
        lineups.append(
            Lineup(
                lineup_id=entry.lineup_id or f"L{idx + 1:03}",
                assignments=tuple(assign_players_to_slots(chosen, contest.slots)),
            )
        )
    return lineups


def _run_simulation(
    lineups: Sequence[Lineup],
    players: Sequence[Player],
    contest: Contest,
    options: SimulationOptions,
) -> SimulationRun:
    matrix = build_correlation_matrix(players, contest.sport)
    return simulate(lineups, matrix, None, contest, _simulate_config(options), pool=players)


def create_app() -> FastAPI:
    app = FastAPI(title="lineupsim")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/optimize", response_model=OptimizeResponse)
    async def optimize_lineups(request: OptimizeRequest) -> OptimizeResponse:
        constraints = request.constraints
        overrides = {} if request.timeout_seconds is None else {"timeout_seconds": request.timeout_seconds}
        try:
            contest = _contest(
                request.sport,
                request.platform,
                request.contest_type,
                request.simulation,
                request.salary_cap,
            )
            config = OptimizeConfig(
                num_lineups=request.num_lineups,
                min_different_players=constraints.min_different_players,
                max_exposure=constraints.max_exposure,
                correlation_weight=constraints.correlation_weight,
                use_correlations=constraints.use_correlations,
                optimize_for=constraints.optimize_for,
                lock_player_ids=constraints.lock_player_ids or [],
                exclude_player_ids=constraints.exclude_player_ids or [],
                max_from_one_team=constraints.max_from_one_team,
                seed=request.seed,
                **overrides,
            )
            matrix = build_correlation_matrix(request.players, contest.sport)
            result = optimize(request.players, contest, config, matrix=matrix)
        except (EngineError, KeyError, ValueError) as exc:
            detail = exc.args[0] if isinstance(exc, KeyError) and exc.args else str(exc)
            raise HTTPException(status_code=400, detail=str(detail)) from exc

        partial_message: str | None = None
        try:
            result.raise_for_partial()
        except LineupGenerationPartial as exc:
            partial_message = exc.message

        simulations = None
        if request.simulate and result.lineups:
            run = simulate(
                result.lineups,
                matrix,
                None,
                contest,
                _simulate_config(request.simulation),
                pool=request.players,
            )
            simulations = [simulation_to_response(item) for item in run.results]

        return OptimizeResponse(
            lineups=[lineup_to_response(lineup) for lineup in result.lineups],
            player_usage=usage_to_response(result),
            warnings=list(result.warnings),
            message=partial_message,
            deadline_exceeded=result.deadline_exceeded,
            diversity_relaxed=result.diversity_relaxed,
            effective_min_different=result.effective_min_different,
            simulations=simulations,
        )

    @app.post("/simulate", response_model=SimulateResponse)
    async def simulate_lineups(request: SimulateRequest) -> SimulateResponse:
        try:
            contest = _contest(
                request.sport,
                request.platform,
                request.contest_type,
                request,
                request.salary_cap,
            )
            lineups = _lineups_from_ids(request.lineups, request.players, contest)
        except (EngineError, KeyError, ValueError) as exc:
            detail = exc.args[0] if isinstance(exc, KeyError) and exc.args else str(exc)
            raise HTTPException(status_code=400, detail=str(detail)) from exc

        run = _run_simulation(lineups, request.players, contest, request)
        message = None
        if run.early_termination:
            message = f"Simulation stopped after {run.iterations_completed}/{run.iterations_requested} iterations"
        return SimulateResponse(
            results=[simulation_to_response(item) for item in run.results],
            iterations_requested=run.iterations_requested,
            iterations_completed=run.iterations_completed,
            early_termination=run.early_termination,
            message=message,
        )

    return app


__all__ = ["create_app", "lineup_to_response", "simulation_to_response", "usage_to_response"]
