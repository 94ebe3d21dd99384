from __future__ import annotations

import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any

from qins.contracts import (
    ActionRequest,
    ActionResult,
    ActionType,
    LogEntry,
    QualityCategory,
    SkillDomain,
)
from qins.core import (
    EventBus,
    SettingsStore,
    SettingsValidationError,
    apply_patch,
    build_forensic_artifact,
    configure_logging,
    gameplay_random,
    persist_forensic_artifact,
    seeded_random,
    time_ago,
)
from qins.export import ExportService
from qins.hooks import QualityHooks
from qins.ledger import PlayClock
from qins.persistence import AnalyticsStore, LogStore
from qins.simulation.host import Colonist, ColonyHost

logger = logging.getLogger(__name__)


class RuntimePaths:
    def __init__(self, root: Path) -> None:
        self.root = root

    @property
    def settings_path(self) -> Path:
        return self.root / "config" / "settings.json"

    @property
    def sqlite_path(self) -> Path:
        return self.root / "data" / "quality_log.sqlite3"

    @property
    def duckdb_path(self) -> Path:
        return self.root / "data" / "analytics.duckdb"

    @property
    def export_dir(self) -> Path:
        return self.root / "exports"

    @property
    def forensic_dir(self) -> Path:
        return self.root / "forensics"


class QualityRuntime:
    def __init__(self, root: Path, seed: int | None = None) -> None:
        self.paths = RuntimePaths(root)
        self.seed = seed
        self.settings_store = SettingsStore(self.paths.settings_path)
        settings = self.settings_store.load()
        configure_logging(settings)

        self.rand = seeded_random(seed) if seed is not None else gameplay_random()
        self.event_bus = EventBus()
        self.store = LogStore(self.paths.sqlite_path)
        self.store.initialize_schema()
        self.play_clock = PlayClock(self.store.load_play_seconds())

        self.host = ColonyHost(self.rand.spawn("host"))
        self.hooks = QualityHooks(
            random_source=self.host.random,
            clock=lambda: self.host.ticks,
            settings=settings,
            apply_outcome=self.host.set_quality,
            event_bus=self.event_bus,
            play_clock=self.play_clock,
        )
        self.host.attach(self.hooks)
        self.hooks.log.load(self.store.load_entries())
        self.colonists: dict[int, Colonist] = {}
        self.last_forensic_path: str | None = None

    def add_colonist(
        self,
        name: str,
        skills: dict[SkillDomain, int] | None = None,
        roles: set[str] | None = None,
        player_controlled: bool = True,
    ) -> Colonist:
        colonist = Colonist(
            actor_id=self.host.next_id(),
            display_name=name,
            skills=dict(skills or {}),
            is_player_controlled=player_controlled,
            roles=set(roles or ()),
        )
        self.colonists[colonist.actor_id] = colonist
        return colonist

    def handle_action(self, request: ActionRequest) -> ActionResult:
        try:
            return self._handle_action_core(request)
        except Exception as exc:
            artifact = build_forensic_artifact(
                engine_scope="runtime",
                error_code="UNHANDLED_RUNTIME_EXCEPTION",
                message=str(exc),
                state_snapshot={"ticks": self.host.ticks, "log_entries": len(self.hooks.log)},
                context={"action_type": str(request.action_type), "payload": request.payload},
                identifiers={"request_id": request.request_id},
                causal_fragment=["runtime_dispatch"],
            )
            self.last_forensic_path = str(persist_forensic_artifact(artifact, self.paths.forensic_dir))
            logger.exception("action %s failed; forensic=%s", request.action_type, self.last_forensic_path)
            return ActionResult(
                request.request_id,
                False,
                f"action failed: {exc}",
                {"forensic_path": self.last_forensic_path},
            )

    def _handle_action_core(self, request: ActionRequest) -> ActionResult:
        action = self._normalize_action(request.action_type)
        payload = request.payload

        if action == ActionType.ADD_COLONIST:
            try:
                skills = {SkillDomain(k): int(v) for k, v in payload.get("skills", {}).items()}
            except ValueError as exc:
                return ActionResult(request.request_id, False, f"invalid skill: {exc}")
            colonist = self.add_colonist(
                str(payload["name"]),
                skills,
                set(payload.get("roles", ())),
                bool(payload.get("player_controlled", True)),
            )
            return ActionResult(request.request_id, True, f"added {colonist.display_name}", {"actor_id": colonist.actor_id})

        if action == ActionType.INSPIRE:
            colonist = self._colonist(payload)
            if colonist is None:
                return self._unknown_actor(request)
            self.host.inspire(colonist)
            return ActionResult(request.request_id, True, f"{colonist.display_name} is inspired")

        if action == ActionType.CRAFT_ITEM:
            colonist = self._colonist(payload)
            if colonist is None:
                return self._unknown_actor(request)
            item = self.host.craft(
                colonist,
                str(payload["def_name"]),
                ingredients=payload.get("ingredients", ()),
                stuff=payload.get("stuff"),
                has_art=bool(payload.get("has_art", False)),
                minify=bool(payload.get("minify", False)),
            )
            return ActionResult(request.request_id, True, f"crafted {item.def_name}", self._item_data(item))

        if action == ActionType.CONSTRUCT:
            colonist = self._colonist(payload)
            if colonist is None:
                return self._unknown_actor(request)
            cell = payload.get("cell", (0, 0))
            item = self.host.construct(
                colonist,
                str(payload["def_name"]),
                (int(cell[0]), int(cell[1])),
                stuff=payload.get("stuff"),
                resources=payload.get("resources", ()),
            )
            return ActionResult(request.request_id, True, f"built {item.def_name}", self._item_data(item))

        if action == ActionType.TRADE_ITEM:
            item = self.host.trade_item(
                str(payload["def_name"]),
                QualityCategory(payload.get("quality", QualityCategory.NORMAL.value)),
                stuff=payload.get("stuff"),
            )
            return ActionResult(request.request_id, True, f"received {item.def_name}", self._item_data(item))

        if action == ActionType.ESTIMATE_CHANCES:
            if not self.hooks.settings.live_estimation_enabled:
                return ActionResult(request.request_id, False, "live estimation is disabled")
            colonist = self._colonist(payload)
            if colonist is None:
                return self._unknown_actor(request)
            result = self.hooks.estimate(
                colonist,
                SkillDomain(payload.get("skill", SkillDomain.CRAFTING.value)),
                item_type=payload.get("item_type"),
                sample_count=payload.get("sample_count"),
            )
            return ActionResult(
                request.request_id,
                True,
                "estimated",
                {
                    "probabilities": {q.value: p for q, p in result.probabilities.items()},
                    "sample_count": result.sample_count,
                    "tier_shift": result.tier_shift,
                    "degenerate": result.degenerate,
                },
            )

        if action == ActionType.GET_LOG:
            quality = payload.get("quality")
            entries = self.hooks.log.filter(payload.get("search"), QualityCategory(quality) if quality else None)
            return ActionResult(
                request.request_id,
                True,
                f"{len(entries)} entries",
                {"entries": [self._entry_data(e) for e in reversed(entries)]},
            )

        if action == ActionType.GET_SETTINGS:
            return ActionResult(request.request_id, True, "settings", {"settings": asdict(self.hooks.settings)})

        if action == ActionType.UPDATE_SETTINGS:
            try:
                updated = apply_patch(self.hooks.settings, dict(payload.get("patch", {})))
            except SettingsValidationError as exc:
                return ActionResult(request.request_id, False, "invalid settings", {"problems": exc.problems})
            self.hooks.update_settings(updated)
            self.settings_store.save(updated)
            configure_logging(updated)
            return ActionResult(request.request_id, True, "settings updated", {"settings": asdict(updated)})

        if action == ActionType.ADVANCE_TICKS:
            ticks = int(payload.get("ticks", 0))
            if ticks < 0:
                return ActionResult(request.request_id, False, "ticks must be >= 0")
            self.play_clock.advance(float(payload.get("real_seconds", 0.0)))
            now = self.host.advance(ticks)
            return ActionResult(request.request_id, True, f"now at tick {now}", {"ticks": now})

        if action == ActionType.SAVE:
            saved = self.save()
            return ActionResult(request.request_id, True, f"saved {saved} entries", {"entries": saved})

        if action == ActionType.EXPORT_LOG:
            outputs = self.export(parquet=bool(payload.get("parquet", True)))
            return ActionResult(request.request_id, True, "exported", {"paths": [str(p) for p in outputs]})

        return ActionResult(request.request_id, False, f"unsupported action '{action.value}'")

    def save(self) -> int:
        return self.store.replace_entries(self.hooks.log.entries(), self.play_clock.seconds)

    def export(self, parquet: bool = True) -> list[Path]:
        service = ExportService(self.paths.duckdb_path)
        csv_path = service.export_log(
            self.hooks.log.entries(),
            self.host.ticks,
            self.paths.export_dir,
            max_files=self.hooks.settings.max_export_files,
        )
        outputs = [csv_path]
        if parquet:
            self.save()
            AnalyticsStore(self.paths.duckdb_path).refresh_from_sqlite(self.paths.sqlite_path)
            outputs.append(service.export_parquet(csv_path))
            outputs.extend(service.export_marts(self.paths.export_dir / "marts"))
        return outputs

    def _normalize_action(self, action: ActionType | str) -> ActionType:
        if isinstance(action, ActionType):
            return action
        return ActionType(action)

    def _colonist(self, payload: dict[str, Any]) -> Colonist | None:
        actor_id = payload.get("actor_id")
        return self.colonists.get(int(actor_id)) if actor_id is not None else None

    def _unknown_actor(self, request: ActionRequest) -> ActionResult:
        return ActionResult(request.request_id, False, f"unknown actor '{request.payload.get('actor_id')}'")

    def _item_data(self, item: Any) -> dict[str, Any]:
        return {
            "item_id": item.item_id,
            "def_name": item.def_name,
            "quality": item.quality.value if item.quality else None,
        }

    def _entry_data(self, entry: LogEntry) -> dict[str, Any]:
        data = asdict(entry)
        data["quality"] = entry.quality.value
        data["skill"] = entry.skill.value
        data["materials"] = list(entry.materials)
        data["time_ago"] = time_ago(self.host.ticks, entry.game_ticks)
        return data
