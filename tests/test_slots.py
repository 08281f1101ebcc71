import pytest

from lineupsim.config import Slot, get_slots
from lineupsim.errors import InsufficientPlayers, NoFeasibleAssignment
from lineupsim.models import Contest, Lineup, LineupSlot, Player
from lineupsim.optimizer import assign_players_to_slots, can_fill, lineup_violations, place_players


def _player(player_id: str, position: str, salary: int = 5000, team: str = "BOS") -> Player:
    return Player(player_id=player_id, name=player_id.upper(), position=position, team=team, salary=salary, projection=20.0)


def test_can_fill_checks_allowed_positions():
    slots = {slot.name: slot for slot in get_slots("NBA", "DK")}
    guard = _player("a", "PG")
    assert can_fill(guard, slots["PG"])
    assert can_fill(guard, slots["G"])
    assert can_fill(guard, slots["UTIL"])
    assert not can_fill(guard, slots["F"])


def test_concrete_slots_take_least_flexible_player():
    players = [
        _player("a", "PG"),
        _player("b", "SG"),
        _player("c", "SF"),
        _player("d", "PF"),
        _player("e", "C"),
        _player("f", "PG"),
        _player("g", "SF"),
        _player("h", "C"),
    ]

    assignments = assign_players_to_slots(players, get_slots("NBA", "DK"))

    by_slot = {entry.slot.name: entry.player.player_id for entry in assignments}
    assert by_slot == {
        "PG": "a",
        "SG": "b",
        "SF": "c",
        "PF": "d",
        "C": "e",
        "G": "f",
        "F": "g",
        "UTIL": "h",
    }
    assert [entry.slot.name for entry in assignments] == ["PG", "SG", "SF", "PF", "C", "G", "F", "UTIL"]


def test_augmenting_path_repairs_greedy_choice():
    slots = (
        Slot(name="A", allowed_positions=frozenset({"X", "Y"}), priority=1),
        Slot(name="B", allowed_positions=frozenset({"Y", "Z"}), priority=2),
        Slot(name="C", allowed_positions=frozenset({"X"}), priority=3),
    )
    players = [_player("v", "X"), _player("u", "Y"), _player("w", "Z")]

    assignments = assign_players_to_slots(players, slots)

    assert {entry.slot.name: entry.player.player_id for entry in assignments} == {"A": "u", "B": "w", "C": "v"}


def test_too_few_players_raises_insufficient():
    with pytest.raises(InsufficientPlayers) as excinfo:
        assign_players_to_slots([_player("a", "G")], get_slots("GOLF", "DK"))
    assert excinfo.value.available == 1
    assert excinfo.value.required == 6


def test_unfillable_slot_is_named():
    players = [_player(f"g{idx}", "G") for idx in range(3)] + [_player(f"x{idx}", "PG") for idx in range(3)]

    with pytest.raises(NoFeasibleAssignment) as excinfo:
        assign_players_to_slots(players, get_slots("GOLF", "DK"))

    assert excinfo.value.slot == "G"
    assert "cannot fill position G" in str(excinfo.value)


def test_place_players_seats_partial_group():
    slots = get_slots("NBA", "DK")
    placement = place_players([_player("a", "PG"), _player("b", "PG"), _player("c", "PG")], slots)

    assert placement is not None
    assert sorted(placement.values()) == [0, 1, 2]
    assert {slots[idx].name for idx in placement} == {"PG", "G", "UTIL"}

    assert place_players([_player(f"p{idx}", "PG") for idx in range(4)], slots) is None


def test_lineup_violations_reports_salary_and_team_limit():
    contest = Contest.for_rules("NBA", "DK", salary_cap=40_000)
    contest = contest.model_copy(update={"team_max_players": 4})
    slots = contest.slots
    positions = ["PG", "SG", "SF", "PF", "C", "PG", "SF", "C"]
    assignments = tuple(
        LineupSlot(slot=slot, player=_player(f"p{idx}", position, salary=6000))
        for idx, (slot, position) in enumerate(zip(slots, positions))
    )
    lineup = Lineup(lineup_id="L001", assignments=assignments)

    problems = lineup_violations(lineup, contest)

    assert "salary 48000 exceeds cap 40000" in problems
    assert "8 players from BOS exceeds limit 4" in problems
    assert len(problems) == 2


def test_lineup_violations_empty_for_valid_lineup():
    contest = Contest.for_rules("NBA", "DK")
    players = [
        _player("a", "PG"),
        _player("b", "SG", team="NYK"),
        _player("c", "SF", team="NYK"),
        _player("d", "PF"),
        _player("e", "C", team="LAL"),
        _player("f", "SG", team="LAL"),
        _player("g", "PF", team="GSW"),
        _player("h", "C", team="GSW"),
    ]
    lineup = Lineup(lineup_id="L001", assignments=tuple(assign_players_to_slots(players, contest.slots)))
    assert lineup_violations(lineup, contest) == []
