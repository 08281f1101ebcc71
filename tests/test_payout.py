import math

import numpy as np
import pytest

from lineupsim.config import get_slots
from lineupsim.models import PayoutStructure, Player
from lineupsim.models.contest import PayoutTier
from lineupsim.simulator import (
    FieldModel,
    cash_rate,
    expected_roi,
    field_model_from_pool,
    payout_for_rank,
    payout_table,
    payouts_for_scores,
)
from lineupsim.simulator.payout import paid_places, ranks_for_scores, roi_from_mean_payout


def test_generated_gpp_table_distributes_prize_pool():
    structure = PayoutStructure(field_size=100, entry_fee=10.0, rake=0.15)
    table = payout_table(structure)

    assert paid_places(structure) == 20
    assert table.sum() == pytest.approx(850.0)
    assert (np.diff(table) <= 1e-9).all()
    assert table[0] > table[1]
    assert table[19] >= 20.0 - 1e-9
    assert (table[20:] == 0.0).all()


def test_top_heavy_curve_pays_more_to_first():
    top_heavy = payout_table(PayoutStructure(field_size=1_000, entry_fee=5.0))
    flat = payout_table(PayoutStructure(field_size=1_000, entry_fee=5.0, curve="flat"))
    assert top_heavy[0] > flat[0]
    assert top_heavy.sum() == pytest.approx(flat.sum())


def test_cash_table_pays_flat_multiple():
    structure = PayoutStructure(contest_type="cash", field_size=100, entry_fee=10.0)
    table = payout_table(structure)

    assert paid_places(structure) == 45
    np.testing.assert_allclose(table[:45], 18.0)
    assert (table[45:] == 0.0).all()


def test_explicit_tiers_override_curve():
    structure = PayoutStructure(
        field_size=100,
        entry_fee=10.0,
        tiers=[
            PayoutTier(min_rank=1, max_rank=1, payout=500.0),
            PayoutTier(min_rank=2, max_rank=5, payout=100.0),
            PayoutTier(min_rank=6, max_rank=10, payout=25.0),
            PayoutTier(min_rank=500, max_rank=600, payout=1.0),
        ],
    )
    table = payout_table(structure)

    assert table[0] == 500.0
    assert (table[1:5] == 100.0).all()
    assert (table[5:10] == 25.0).all()
    assert (table[10:] == 0.0).all()
    assert payout_for_rank(3, structure, table) == 100.0
    assert payout_for_rank(0, structure, table) == 0.0
    assert payout_for_rank(101, structure) == 0.0


def test_field_model_percentiles_and_quantiles():
    field = FieldModel(mean=100.0, std=10.0)
    assert field.percentile(100.0) == pytest.approx(0.5)
    assert field.quantile(0.5) == pytest.approx(100.0)
    assert field.quantile(0.8413447) == pytest.approx(110.0, abs=1e-3)

    flat = FieldModel(mean=50.0, std=0.0)
    np.testing.assert_array_equal(flat.percentile([40.0, 50.0, 60.0]), [0.0, 0.5, 1.0])
    assert flat.quantile(0.9) == 50.0


def test_ranks_map_scores_onto_the_field():
    structure = PayoutStructure(field_size=100)
    field = FieldModel(mean=100.0, std=10.0)
    ranks = ranks_for_scores([1_000.0, -1_000.0, 100.0], field, structure)
    assert list(ranks) == [1, 100, 50]


def test_gpp_roi_from_dominant_and_hopeless_scores():
    structure = PayoutStructure(field_size=100, entry_fee=10.0)
    field = FieldModel(mean=100.0, std=10.0)
    table = payout_table(structure)

    assert expected_roi([1_000.0] * 10, field, structure) == pytest.approx((table[0] - 10.0) / 10.0)
    assert expected_roi([0.0] * 10, field, structure) == pytest.approx(-1.0)
    assert cash_rate([0.0] * 10, field, structure) == 0.0
    assert expected_roi([], field, structure) == 0.0


def test_cash_payouts_use_the_paid_line():
    structure = PayoutStructure(contest_type="cash", field_size=100, entry_fee=10.0)
    field = FieldModel(mean=100.0, std=10.0)

    payouts = payouts_for_scores([150.0, 50.0], field, structure)
    np.testing.assert_allclose(payouts, [18.0, 0.0])
    assert cash_rate([150.0, 50.0], field, structure) == pytest.approx(0.5)
    assert expected_roi([150.0, 50.0], field, structure) == pytest.approx(-0.1)


def test_free_contest_has_zero_roi():
    assert roi_from_mean_payout(25.0, 0.0) == 0.0
    assert roi_from_mean_payout(25.0, 10.0) == pytest.approx(1.5)


def test_field_model_from_pool_weights_by_ownership():
    players = [
        Player(player_id="a", position="G", salary=8000, projection=10.0),
        Player(player_id="b", position="G", salary=8000, projection=30.0),
    ]
    slots = get_slots("GOLF", "DK")[:2]

    uniform = field_model_from_pool(players, slots)
    assert uniform.mean == pytest.approx(40.0)
    assert uniform.std == pytest.approx(math.sqrt(200.0))

    owned = [players[0].model_copy(update={"ownership": 75.0}), players[1].model_copy(update={"ownership": 25.0})]
    skewed = field_model_from_pool(owned, slots, strength=1.1)
    assert skewed.mean == pytest.approx(2 * 15.0 * 1.1)

    assert field_model_from_pool([], slots) == FieldModel(mean=0.0, std=0.0)
