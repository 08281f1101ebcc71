"""Lightweight REST client for the lineupsim API."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import httpx


def main() -> None:
    parser = argparse.ArgumentParser(description="Interact with the lineupsim REST API")
    parser.add_argument("base_url", help="Base URL of the API, e.g. http://localhost:8000")
    parser.add_argument("players", type=Path, nargs="?", help="Players JSON file")
    parser.add_argument("--sport", default="NBA", help="Sport key")
    parser.add_argument("--platform", default="DK", help="Platform key")
    parser.add_argument("--lineups", type=int, default=20, help="Number of lineups to request")
    parser.add_argument("--min-different", type=int, default=2, help="Minimum players two lineups differ by")
    parser.add_argument("--max-exposure", type=float, default=None, help="Maximum exposure per player")
    parser.add_argument("--simulate", action="store_true", help="Simulate the returned lineups")
    parser.add_argument("--iterations", type=int, default=None, help="Simulation iterations")
    parser.add_argument("--health", action="store_true", help="Check the service health and exit")
    parser.add_argument("--timeout", type=float, default=120.0, help="HTTP timeout in seconds")
    args = parser.parse_args()

    with httpx.Client(base_url=args.base_url, timeout=args.timeout) as client:
        if args.health:
            resp = client.get("/health")
            resp.raise_for_status()
            print(json.dumps(resp.json(), indent=2))
            return

        if args.players is None:
            raise SystemExit("a players file is required unless using --health")

        players = json.loads(args.players.read_text(encoding="utf-8"))
        request = {
            "players": players,
            "sport": args.sport,
            "platform": args.platform,
            "num_lineups": args.lineups,
            "constraints": {
                "min_different_players": args.min_different,
                "max_exposure": args.max_exposure,
            },
            "simulate": args.simulate,
            "simulation": {"iterations": args.iterations},
        }
        resp = client.post("/optimize", json=request)
        if resp.status_code == 400:
            raise SystemExit(f"optimization rejected: {resp.json().get('detail')}")
        resp.raise_for_status()
        payload = resp.json()
        print(f"Received {len(payload['lineups'])} lineups")
        if payload.get("message"):
            print(f"Stopped early: {payload['message']}")
        for warning in payload.get("warnings", []):
            print(f"Warning: {warning}")
        if payload["lineups"]:
            print(json.dumps(payload["lineups"][0], indent=2))
        if payload.get("simulations"):
            print(json.dumps(payload["simulations"][0], indent=2))


if __name__ == "__main__":
    main()
