import math
import time

import pytest
from pydantic import ValidationError

from lineupsim.models import Contest, CutLineModel, Lineup, Player
from lineupsim.optimizer import assign_players_to_slots, build_correlation_matrix
from lineupsim.simulator import SimulateConfig, build_distribution, simulate


def _golfers(prefix: str = "g", country: str | None = None, spread: float = 20.0):
    return [
        Player(
            player_id=f"{prefix}{idx}",
            name=f"Golfer {idx}",
            position="G",
            salary=8000,
            projection=50.0 + idx,
            floor=50.0 + idx - spread,
            ceiling=50.0 + idx + spread,
            country=country,
        )
        for idx in range(6)
    ]


def _lineup(lineup_id: str, players, contest: Contest) -> Lineup:
    return Lineup(lineup_id=lineup_id, assignments=tuple(assign_players_to_slots(players, contest.slots)))


def _config(**overrides) -> SimulateConfig:
    values = {"iterations": 4_000, "workers": 1, "block_size": 1_000, "seed": 7}
    values.update(overrides)
    return SimulateConfig(**values)


def test_mean_converges_to_sum_of_projections():
    contest = Contest.for_rules("GOLF", "DK")
    players = _golfers()
    lineup = _lineup("L001", players, contest)
    expected_mean = sum(player.projection for player in players)
    expected_std = math.sqrt(6 * 10.0 ** 2)

    for iterations in (1_000, 40_000):
        run = simulate([lineup], None, None, contest, _config(iterations=iterations, block_size=5_000))
        result = run.results[0]
        assert result.iterations == iterations
        assert abs(result.mean_score - expected_mean) <= 4 * expected_std / math.sqrt(iterations)

    assert result.std_dev == pytest.approx(expected_std, rel=0.03)
    assert abs(result.skewness) < 0.1
    assert abs(result.percentiles[50.0] - result.mean_score) < 1.0
    values = [result.percentiles[pct] for pct in sorted(result.percentiles)]
    assert values == sorted(values)
    assert result.min_score <= values[0] and values[-1] <= result.max_score


def test_worker_count_does_not_change_results():
    contest = Contest.for_rules("GOLF", "DK")
    lineups = [
        _lineup("L001", _golfers(country="USA"), contest),
        _lineup("L002", _golfers(prefix="h"), contest),
    ]

    serial = simulate(lineups, None, None, contest, _config(workers=1))
    parallel = simulate(lineups, None, None, contest, _config(workers=2))

    assert parallel.workers == 2
    assert serial.results == parallel.results
    assert serial.iterations_completed == parallel.iterations_completed == 4_000
    assert serial.blocks_completed == 4

    reseeded = simulate(lineups, None, None, contest, _config(seed=8))
    assert reseeded.results[0].mean_score != serial.results[0].mean_score


def test_shared_cluster_widens_lineup_spread():
    contest = Contest.for_rules("GOLF", "DK")
    independent = _lineup("L001", _golfers(prefix="a"), contest)
    clustered_players = _golfers(prefix="b", country="USA")
    clustered = _lineup("L002", clustered_players, contest)

    matrix = build_correlation_matrix(_golfers(prefix="a") + clustered_players, "GOLF")
    run = simulate([independent, clustered], matrix, None, contest, _config(iterations=20_000, block_size=5_000))
    by_id = run.by_lineup()

    assert by_id["L002"].std_dev > 1.05 * by_id["L001"].std_dev
    assert by_id["L002"].mean_score == pytest.approx(by_id["L001"].mean_score, abs=2.0)


def test_degenerate_players_give_fixed_score():
    contest = Contest.for_rules("GOLF", "DK")
    players = _golfers(spread=0.0)
    run = simulate([_lineup("L001", players, contest)], None, None, contest, _config())
    result = run.results[0]

    assert result.mean_score == pytest.approx(315.0)
    assert result.std_dev == pytest.approx(0.0, abs=1e-9)
    assert result.min_score == result.max_score == pytest.approx(315.0)
    assert all(value == pytest.approx(315.0) for value in result.percentiles.values())
    assert result.skewness == 0.0


def test_golf_cut_probability_tracks_the_line():
    players = _golfers()
    easy = Contest.for_rules("GOLF", "DK", cut_line=CutLineModel(mean=-1_000.0))
    hard = Contest.for_rules("GOLF", "DK", cut_line=CutLineModel(mean=1_000.0, std=5.0))
    partial = Contest.for_rules("GOLF", "DK", cut_line=CutLineModel(mean=52.0, min_players=1))
    no_cut = Contest.for_rules("GOLF", "DK")

    def cut_probability(contest):
        run = simulate([_lineup("L001", players, contest)], None, None, contest, _config(iterations=2_000))
        return run.results[0].cut_probability

    assert cut_probability(easy) == 1.0
    assert cut_probability(hard) == 0.0
    assert 0.9 < cut_probability(partial) <= 1.0
    assert cut_probability(no_cut) is None


def test_contest_rates_are_probabilities():
    contest = Contest.for_rules("GOLF", "DK", field_size=500, entry_fee=10.0)
    players = _golfers()
    run = simulate([_lineup("L001", players, contest)], None, None, contest, _config(), pool=players)
    result = run.results[0]

    assert 0.0 <= result.cash_rate <= 1.0
    assert 0.0 <= result.win_rate <= result.top_finish_rates[1.0]
    assert result.expected_roi >= -1.0
    assert result.top_finish_rates[1.0] <= result.top_finish_rates[10.0]
    assert run.field.mean == pytest.approx(sum(p.projection for p in players))


def test_custom_distributions_are_used():
    contest = Contest.for_rules("GOLF", "DK")
    players = _golfers()
    distributions = {player.player_id: build_distribution(player, k=1_000_000.0) for player in players}
    run = simulate([_lineup("L001", players, contest)], None, distributions, contest, _config())
    assert run.results[0].std_dev < 0.01


def test_expired_deadline_terminates_early():
    contest = Contest.for_rules("GOLF", "DK")
    lineup = _lineup("L001", _golfers(), contest)
    run = simulate([lineup], None, None, contest, _config(deadline=time.monotonic() - 1.0))

    assert run.early_termination
    assert run.iterations_completed == 0
    assert run.results[0].early_termination
    assert run.results[0].iterations == 0


def test_no_lineups_is_an_empty_run():
    run = simulate([], None, None, Contest.for_rules("NBA", "DK"), _config())
    assert run.results == []
    assert run.iterations_completed == 0


def test_config_normalizes_percentiles():
    config = _config(percentiles=[90, 10, 50, 10])
    assert config.percentiles == [10.0, 50.0, 90.0]
    with pytest.raises(ValidationError):
        _config(percentiles=[150])
    with pytest.raises(ValidationError):
        _config(seed=-1)
