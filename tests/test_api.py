import pytest
from httpx import ASGITransport, AsyncClient

from lineupsim.api import create_app


@pytest.fixture(scope="module")
async def client():
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client


def _sample_players(count: int = 8) -> list[dict]:
    countries = ["USA", "ENG", "USA", "ESP"]
    return [
        {
            "player_id": f"g{idx}",
            "name": f"Golfer {idx}",
            "position": "G",
            "salary": 7000 + 100 * idx,
            "projection": 50.0 + idx,
            "floor": 35.0 + idx,
            "ceiling": 65.0 + idx,
            "ownership": 5.0 + idx,
            "country": countries[idx % 4],
        }
        for idx in range(count)
    ]


def _optimize_request(**overrides) -> dict:
    payload = {
        "players": _sample_players(),
        "sport": "GOLF",
        "platform": "DK",
        "num_lineups": 2,
        "seed": 1,
        "simulation": {"iterations": 500, "workers": 1},
    }
    payload.update(overrides)
    return payload


@pytest.mark.anyio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.anyio
async def test_optimize_endpoint(client: AsyncClient):
    resp = await client.post("/optimize", json=_optimize_request())
    assert resp.status_code == 200
    payload = resp.json()

    assert len(payload["lineups"]) == 2
    assert payload["message"] is None
    assert payload["simulations"] is None
    for lineup in payload["lineups"]:
        assert len(lineup["players"]) == 6
        assert {player["slot"] for player in lineup["players"]} == {"G"}
        assert lineup["total_salary"] <= 50_000
    assert sum(entry["count"] for entry in payload["player_usage"]) == 12


@pytest.mark.anyio
async def test_optimize_with_simulation(client: AsyncClient):
    resp = await client.post("/optimize", json=_optimize_request(simulate=True))
    assert resp.status_code == 200
    payload = resp.json()

    simulations = payload["simulations"]
    assert [item["lineup_id"] for item in simulations] == [lineup["lineup_id"] for lineup in payload["lineups"]]
    first = simulations[0]
    assert first["iterations"] == 500
    assert "50" in first["percentiles"]
    assert first["cut_probability"] is None
    assert 0.0 <= first["win_rate"] <= 1.0


@pytest.mark.anyio
async def test_optimize_partial_batch_reports_message(client: AsyncClient):
    request = _optimize_request(num_lineups=4, constraints={"max_exposure": 0.25})
    resp = await client.post("/optimize", json=request)
    assert resp.status_code == 200
    payload = resp.json()

    assert len(payload["lineups"]) == 1
    assert payload["message"]
    assert payload["warnings"]


@pytest.mark.anyio
async def test_optimize_rejects_unfillable_pool(client: AsyncClient):
    players = _sample_players(3) + [
        {"player_id": f"x{idx}", "position": "PG", "salary": 5000, "projection": 20.0} for idx in range(5)
    ]
    resp = await client.post("/optimize", json=_optimize_request(players=players))
    assert resp.status_code == 400
    assert "position G" in resp.json()["detail"]


@pytest.mark.anyio
async def test_optimize_rejects_unknown_sport(client: AsyncClient):
    resp = await client.post("/optimize", json=_optimize_request(sport="CRICKET"))
    assert resp.status_code == 400
    assert "CRICKET" in resp.json()["detail"]


@pytest.mark.anyio
async def test_simulate_endpoint(client: AsyncClient):
    request = {
        "players": _sample_players(),
        "sport": "GOLF",
        "platform": "DK",
        "lineups": [
            {"lineup_id": "mine", "player_ids": ["g0", "g1", "g2", "g3", "g4", "g5"]},
            {"player_ids": ["g2", "g3", "g4", "g5", "g6", "g7"]},
        ],
        "iterations": 1_000,
        "workers": 1,
        "seed": 3,
        "cut_line": {"mean": 40.0, "std": 5.0},
    }
    resp = await client.post("/simulate", json=request)
    assert resp.status_code == 200
    payload = resp.json()

    assert payload["iterations_completed"] == 1_000
    assert not payload["early_termination"]
    assert [item["lineup_id"] for item in payload["results"]] == ["mine", "L002"]
    for item in payload["results"]:
        assert 0.0 <= item["cut_probability"] <= 1.0
        assert item["min_score"] <= item["mean_score"] <= item["max_score"]
    assert payload["results"][1]["mean_score"] > payload["results"][0]["mean_score"]


@pytest.mark.anyio
async def test_simulate_rejects_unknown_players(client: AsyncClient):
    request = {
        "players": _sample_players(),
        "sport": "GOLF",
        "platform": "DK",
        "lineups": [{"player_ids": ["g0", "g1", "g2", "g3", "g4", "nobody"]}],
        "workers": 1,
    }
    resp = await client.post("/simulate", json=request)
    assert resp.status_code == 400
    assert "nobody" in resp.json()["detail"]
