from __future__ import annotations

import argparse
import logging
from pathlib import Path

from qins.contracts import ActionRequest, ActionType, SPECIALIST_TAG
from qins.core import configure_logging, request_id
from qins.simulation import QualityRuntime


def _request(action: ActionType, payload: dict | None = None) -> ActionRequest:
    return ActionRequest(request_id(), action, payload or {})


def _seed_colony(runtime: QualityRuntime) -> list[int]:
    roster = [
        {"name": "Ada", "skills": {"crafting": 14, "artistic": 6, "construction": 8}},
        {"name": "Bram", "skills": {"crafting": 6, "artistic": 12, "construction": 15}, "roles": [SPECIALIST_TAG]},
        {"name": "Cato", "skills": {"crafting": 3, "artistic": 2, "construction": 4}},
    ]
    ids: list[int] = []
    for member in roster:
        added = runtime.handle_action(_request(ActionType.ADD_COLONIST, member))
        if not added.success:
            raise RuntimeError(added.message)
        ids.append(added.data["actor_id"])
    return ids


def main() -> None:
    parser = argparse.ArgumentParser(description="Quality Insights: production quality logging and estimation demo")
    parser.add_argument("--root", type=Path, default=Path.cwd(), help="runtime root directory")
    parser.add_argument("--seed", type=int, default=None, help="seed for deterministic dev/testing runs")
    parser.add_argument("--days", type=int, default=3, help="in-game days to simulate")
    parser.add_argument("--override", action="store_true", help="enable the outcome override for this run")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    runtime = QualityRuntime(root=args.root, seed=args.seed)
    if args.debug:
        configure_logging(runtime.hooks.settings, logging.DEBUG)
    if args.override:
        runtime.handle_action(_request(ActionType.UPDATE_SETTINGS, {"patch": {"override_enabled": True}}))
    ada, bram, cato = _seed_colony(runtime)

    for day in range(args.days):
        if day % 2 == 0:
            runtime.handle_action(_request(ActionType.INSPIRE, {"actor_id": ada}))
        for actor_id in (ada, bram, cato):
            crafted = runtime.handle_action(
                _request(ActionType.CRAFT_ITEM, {"actor_id": actor_id, "def_name": "Apparel_Parka", "ingredients": ["Cloth"], "stuff": "Cloth"})
            )
            print(crafted.message, crafted.data.get("quality"))
        built = runtime.handle_action(
            _request(
                ActionType.CONSTRUCT,
                {"actor_id": bram, "def_name": "Bed", "cell": [day, 4], "stuff": "WoodLog", "resources": ["WoodLog"]},
            )
        )
        print(built.message, built.data.get("quality"))
        runtime.handle_action(_request(ActionType.ADVANCE_TICKS, {"ticks": 60000, "real_seconds": 1000.0}))

    for actor_id in (ada, bram, cato):
        estimate = runtime.handle_action(_request(ActionType.ESTIMATE_CHANCES, {"actor_id": actor_id, "skill": "crafting"}))
        if not estimate.success:
            print(estimate.message)
            continue
        chances = ", ".join(f"{q}={p:.1%}" for q, p in estimate.data["probabilities"].items() if p > 0)
        print(f"actor {actor_id}: {chances}")

    log = runtime.handle_action(_request(ActionType.GET_LOG))
    print("Recent production:")
    for row in log.data.get("entries", [])[:10]:
        print(f"- {row['time_ago']} ago: {row['actor_name']} made {row['item_type']} ({row['quality']})")

    runtime.handle_action(_request(ActionType.SAVE))
    exported = runtime.handle_action(_request(ActionType.EXPORT_LOG))
    if exported.success:
        print("Exported:")
        for p in exported.data["paths"]:
            print(f"- {p}")
    else:
        print(f"Export unavailable: {exported.message}")


if __name__ == "__main__":
    main()
