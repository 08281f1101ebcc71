import pytest
from pydantic import ValidationError

from lineupsim.models import Contest, CutLineModel, PayoutStructure, PayoutTier, Player


def test_player_is_frozen():
    player = Player(player_id="p1", name="Test Player", position="PG", team="BOS", salary=9000, projection=40.5)

    assert player.player_id == "p1"
    assert player.floor == player.ceiling == 40.5

    with pytest.raises((TypeError, ValidationError)):
        player.player_id = "p2"  # type: ignore[misc]


def test_player_range_must_bracket_projection():
    with pytest.raises(ValidationError):
        Player(player_id="p1", position="PG", salary=5000, projection=20.0, floor=25.0, ceiling=30.0)
    with pytest.raises(ValidationError):
        Player(player_id="p1", position="PG", salary=5000, projection=20.0, ownership=120.0)


def test_game_key_prefers_game_id_then_sorted_teams():
    home = Player(player_id="a", position="PG", team="NYK", opponent="BOS", salary=5000, projection=20.0)
    away = Player(player_id="b", position="SG", team="BOS", opponent="NYK", salary=5000, projection=20.0)
    explicit = Player(player_id="c", position="G", game_id="tee-7", salary=9000, projection=60.0)
    loner = Player(player_id="d", position="C", team="BOS", salary=5000, projection=20.0)

    assert home.game_key == away.game_key == "BOS@NYK"
    assert explicit.game_key == "tee-7"
    assert loner.game_key is None


def test_points_follow_optimize_target():
    player = Player(player_id="p", position="SF", salary=6000, projection=30.0, floor=18.0, ceiling=48.0)
    assert player.points("ceiling") == 48.0
    assert player.points("floor") == 18.0
    assert player.points("balanced") == 30.0


def test_contest_for_rules_uses_slot_tables():
    contest = Contest.for_rules("golf", "dk", contest_type="cash", entry_fee=5.0, cut_line=CutLineModel(mean=40.0))
    assert contest.salary_cap == 50_000
    assert len(contest.slots) == 6
    assert contest.contest_type == "cash"
    assert contest.entry_fee == 5.0
    assert contest.payout.effective_paid_fraction == pytest.approx(0.45)
    assert contest.is_golf


def test_payout_structure_validation():
    assert PayoutStructure().effective_paid_fraction == pytest.approx(0.2)
    with pytest.raises(ValidationError):
        PayoutTier(min_rank=5, max_rank=2, payout=10.0)
    with pytest.raises(ValidationError):
        PayoutStructure(field_size=1)
