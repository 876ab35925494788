from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from storycast.casting import StoryletLibrary, WorldSnapshot
from storycast.director import ChoiceResolver


def canonical_fingerprint(payload: Any) -> str:
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(canonical).hexdigest()


@dataclass(slots=True)
class ReplayAction:
    storylet_id: str
    choice_id: str


class ReplayHarness:
    def __init__(self, library: StoryletLibrary, world: WorldSnapshot, seed: int | None = None) -> None:
        self.library = library
        self.world = world if seed is None else replace(world, world_seed=seed)
        self.actions: list[ReplayAction] = []

    @property
    def seed(self) -> int:
        return self.world.world_seed

    def record(self, storylet_id: str, choice_id: str) -> None:
        self.actions.append(ReplayAction(storylet_id=storylet_id, choice_id=choice_id))

    def save(self, path: Path) -> None:
        payload = {
            "seed": self.seed,
            "actions": [{"storylet_id": a.storylet_id, "choice_id": a.choice_id} for a in self.actions],
        }
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    @staticmethod
    def load(path: Path, library: StoryletLibrary, world: WorldSnapshot) -> ReplayHarness:
        data = json.loads(path.read_text(encoding="utf-8"))
        harness = ReplayHarness(library, world, seed=int(data["seed"]))
        for raw in data["actions"]:
            harness.record(raw["storylet_id"], raw["choice_id"])
        return harness

    def run_once(self) -> list[str]:
        resolver = ChoiceResolver(self.library)
        return [
            canonical_fingerprint(resolver.resolve_choice(a.storylet_id, a.choice_id, self.world).to_payload())
            for a in self.actions
        ]

    def replay(self) -> tuple[list[str], list[str]]:
        return self.run_once(), self.run_once()
