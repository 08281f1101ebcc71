import pytest

from lineupsim.models import Player
from lineupsim.optimizer import build_correlation_matrix, pair_correlation


def _player(player_id: str, position: str, team: str = "", opponent: str | None = None, **extra) -> Player:
    payload = {
        "player_id": player_id,
        "name": player_id.upper(),
        "position": position,
        "team": team,
        "opponent": opponent,
        "salary": extra.pop("salary", 6000),
        "projection": extra.pop("projection", 30.0),
    }
    payload.update(extra)
    return Player(**payload)


def _nba_pool():
    return [
        _player("bos_pg", "PG", "BOS", "NYK"),
        _player("bos_sg", "SG", "BOS", "NYK"),
        _player("bos_pg2", "PG", "BOS", "NYK"),
        _player("nyk_c", "C", "NYK", "BOS"),
        _player("lal_sf", "SF", "LAL", "GSW"),
    ]


def test_teammates_correlate_more_than_unrelated_players():
    matrix = build_correlation_matrix(_nba_pool(), "NBA")

    assert matrix["bos_pg"]["bos_sg"] == pytest.approx(0.35)
    assert matrix["bos_pg"]["bos_sg"] > matrix["bos_pg"]["lal_sf"]
    assert matrix["bos_pg"]["lal_sf"] == 0.0


def test_matrix_is_symmetric_with_unit_diagonal():
    matrix = build_correlation_matrix(_nba_pool(), "NBA")

    for a, b in matrix.pairs():
        assert matrix.get(a, b) == matrix.get(b, a)
        assert -1.0 <= matrix.get(a, b) <= 1.0
    assert matrix.get("bos_pg", "bos_pg") == 1.0


def test_same_position_teammates_and_opponents():
    matrix = build_correlation_matrix(_nba_pool(), "NBA")

    assert matrix.get("bos_pg", "bos_pg2") == 0.0
    assert matrix.get("bos_pg", "nyk_c") == pytest.approx(0.15)
    assert "bos_pg2" not in matrix.row("bos_pg")


def test_nba_clusters_follow_games():
    matrix = build_correlation_matrix(_nba_pool(), "NBA")

    assert matrix.cluster_of("bos_pg") == matrix.cluster_of("nyk_c") == "game:BOS@NYK"
    assert matrix.clusters()["game:BOS@NYK"] == ("bos_pg", "bos_pg2", "bos_sg", "nyk_c")
    # Only the lone LAL player sits in the LAL/GSW game.
    assert matrix.average_cluster_correlation("lal_sf") == 0.0
    expected = (0.35 + 0.0 + 0.15) / 3
    assert matrix.average_cluster_correlation("bos_pg") == pytest.approx(expected)


def test_nfl_stack_and_opponent_correlations():
    qb = _player("kc_qb", "QB", "KC", "BUF")
    wr = _player("kc_wr", "WR", "KC", "BUF")
    rb = _player("kc_rb", "RB", "KC", "BUF")
    opp_wr = _player("buf_wr", "WR", "BUF", "KC")
    opp_dst = _player("buf_dst", "D", "BUF", "KC")

    assert pair_correlation(qb, wr, "NFL") == pytest.approx(0.5)
    assert pair_correlation(qb, opp_wr, "NFL") == pytest.approx(0.25)
    assert pair_correlation(rb, opp_dst, "NFL") == pytest.approx(-0.30)

    matrix = build_correlation_matrix([qb, wr, rb, opp_wr, opp_dst], "NFL")
    assert matrix.strongly_correlated("kc_qb", 0.4) == ["kc_wr"]
    assert matrix.negatively_correlated("kc_rb", 0.25) == ["buf_dst"]


def test_mlb_pitcher_fades_opposing_hitters():
    pitcher = _player("nyy_p", "SP", "NYY", "BOS")
    hitter = _player("bos_of", "OF", "BOS", "NYY")
    assert pair_correlation(pitcher, hitter, "MLB") == pytest.approx(-0.25)


def test_golf_correlation_uses_country_tee_group_and_salary():
    scheffler = _player("g1", "G", salary=9000, projection=70.0, country="USA", game_id="tee-1")
    schauffele = _player("g2", "G", salary=9000, projection=68.0, country="USA")
    rahm = _player("g3", "G", salary=9000, projection=66.0, country="ESP")
    playing_partner = _player("g4", "G", salary=6000, projection=45.0, country="ESP", game_id="tee-1")

    assert pair_correlation(scheffler, schauffele, "GOLF") == pytest.approx(0.18)
    assert pair_correlation(scheffler, rahm, "GOLF") == pytest.approx(0.08)
    assert pair_correlation(scheffler, playing_partner, "GOLF") == pytest.approx(0.15)

    matrix = build_correlation_matrix([scheffler, schauffele, rahm, playing_partner], "GOLF")
    assert matrix["g1"]["g2"] > matrix["g1"]["g3"]
    assert matrix.cluster_of("g1") == "country:USA"
    assert matrix.cluster_of("g4") == "country:ESP"


def test_lineup_correlation_is_mean_of_pairs():
    matrix = build_correlation_matrix(_nba_pool(), "NBA")
    ids = ["bos_pg", "bos_sg", "lal_sf"]
    assert matrix.lineup_correlation(ids) == pytest.approx(0.35 / 3)
    assert matrix.total_correlation(ids) == pytest.approx(0.35)
    assert matrix.lineup_correlation(["bos_pg"]) == 0.0
