from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping

from storycast.contracts import Candidate, RelationBand, StatKind, ValidationError, ValidationIssue

AXIS_MIN = -10.0
AXIS_MAX = 10.0
AXES = ("affection", "trust", "attraction", "familiarity", "resentment")

# (axis, weight, inverted); weights per band sum to 1.0
_BAND_STRENGTH_AXES: dict[RelationBand, tuple[tuple[str, float, bool], ...]] = {
    RelationBand.STRANGER: (("familiarity", 1.0, True),),
    RelationBand.ACQUAINTANCE: (("familiarity", 1.0, False),),
    RelationBand.FRIEND: (("affection", 0.4, False), ("trust", 0.3, False), ("familiarity", 0.3, False)),
    RelationBand.RIVAL: (("resentment", 0.6, False), ("trust", 0.2, True), ("affection", 0.2, True)),
    RelationBand.ALLY: (("trust", 0.5, False), ("familiarity", 0.3, False), ("affection", 0.2, False)),
    RelationBand.ROMANCE: (("attraction", 0.5, False), ("affection", 0.3, False), ("trust", 0.2, False)),
    RelationBand.FAMILY: (("affection", 0.5, False), ("trust", 0.3, False), ("familiarity", 0.2, False)),
}


def clamp_axis(value: float) -> float:
    return max(AXIS_MIN, min(AXIS_MAX, float(value)))


@dataclass(frozen=True, slots=True)
class RelationshipVector:
    """Player-facing relationship axes, each in [-10, 10]."""

    affection: float = 0.0
    trust: float = 0.0
    attraction: float = 0.0
    familiarity: float = 0.0
    resentment: float = 0.0

    @classmethod
    def create(cls, **axes: float) -> RelationshipVector:
        unknown = sorted(set(axes) - set(AXES))
        if unknown:
            raise ValueError(f"unknown relationship axes: {', '.join(unknown)}")
        return cls(**{name: clamp_axis(value) for name, value in axes.items()})

    def axis(self, name: str) -> float:
        return float(getattr(self, name))


def derive_band(vector: RelationshipVector) -> RelationBand:
    if vector.resentment >= 6.0:
        return RelationBand.RIVAL
    if vector.attraction >= 6.0 and vector.affection >= 1.0:
        return RelationBand.ROMANCE
    if vector.affection >= 8.0 and vector.trust >= 2.0:
        return RelationBand.FAMILY
    if 1.0 <= vector.affection < 8.0 and vector.trust >= 2.0:
        return RelationBand.FRIEND
    if -5.0 < vector.affection < 5.0:
        return RelationBand.ACQUAINTANCE
    return RelationBand.STRANGER


def band_strength(vector: RelationshipVector, band: RelationBand) -> float:
    total = 0.0
    for axis, weight, inverted in _BAND_STRENGTH_AXES[band]:
        normalized = (vector.axis(axis) - AXIS_MIN) / (AXIS_MAX - AXIS_MIN)
        total += weight * ((1.0 - normalized) if inverted else normalized)
    return round(min(1.0, max(0.0, total)), 9)


@dataclass(frozen=True, slots=True)
class NpcRecord:
    actor_id: str
    relationship: RelationshipVector = field(default_factory=RelationshipVector)
    stats: Mapping[StatKind, float] = field(default_factory=dict)
    relation_band: RelationBand | None = None

    def band(self) -> RelationBand:
        return self.relation_band if self.relation_band is not None else derive_band(self.relationship)


@dataclass(frozen=True, slots=True)
class WorldSnapshot:
    world_seed: int
    player_id: str
    npcs: tuple[NpcRecord, ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> WorldSnapshot:
        if not isinstance(payload, Mapping):
            raise ValidationError([_world_issue("WORLD_MALFORMED", "", "", "world snapshot must be an object")])
        raw_npcs = payload.get("npcs")
        if raw_npcs is None:
            raw_npcs = []
        if not isinstance(raw_npcs, list):
            raise ValidationError([_world_issue("NPCS_MALFORMED", "npcs", "", "npcs must be a list")])
        issues: list[ValidationIssue] = []
        npcs: list[NpcRecord] = []
        for idx, raw in enumerate(raw_npcs):
            if not isinstance(raw, Mapping):
                issues.append(_world_issue("NPC_RECORD_INVALID", f"npcs[{idx}]", "", "npc entry must be an object"))
                continue
            actor_id = str(raw.get("id") or "")
            if not actor_id:
                issues.append(_world_issue("NPC_ID_MISSING", f"npcs[{idx}].id", "", "npc id is required"))
                continue
            raw_relationship = raw.get("relationship") or {}
            raw_stats = raw.get("stats") or {}
            if not isinstance(raw_relationship, Mapping) or not isinstance(raw_stats, Mapping):
                issues.append(
                    _world_issue("NPC_RECORD_INVALID", f"npcs[{idx}]", actor_id, "relationship and stats must be objects")
                )
                continue
            try:
                relationship = RelationshipVector.create(**{k: _finite(v) for k, v in raw_relationship.items()})
                stats = {StatKind(str(k).lower()): _finite(v) for k, v in raw_stats.items()}
                band = RelationBand.parse(str(raw["relation_band"])) if raw.get("relation_band") else None
            except (TypeError, ValueError) as exc:
                issues.append(_world_issue("NPC_RECORD_INVALID", f"npcs[{idx}]", actor_id, str(exc)))
                continue
            npcs.append(NpcRecord(actor_id=actor_id, relationship=relationship, stats=stats, relation_band=band))
        raw_seed = payload.get("world_seed", 0)
        if isinstance(raw_seed, bool) or not isinstance(raw_seed, int):
            issues.append(_world_issue("WORLD_SEED_MALFORMED", "world_seed", "", "world_seed must be an integer"))
        if issues:
            raise ValidationError(issues)
        return cls(
            world_seed=raw_seed,
            player_id=str(payload.get("player_id", "player")),
            npcs=tuple(npcs),
        )


def _finite(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError("boolean is not a numeric value")
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"value {value!r} is not finite")
    return number


def _world_issue(code: str, field_path: str, entity_id: str, message: str) -> ValidationIssue:
    return ValidationIssue(code=code, severity="blocking", field_path=field_path, entity_id=entity_id, message=message)


class CandidatePool:
    """Read-only candidate snapshot for a single resolution.

    Stat mappings are copied on the way in, so later mutation of the caller's
    world state cannot leak into a resolution in progress. Duplicate actor ids
    keep their first occurrence.
    """

    def __init__(self, candidates: Iterable[Candidate] = ()) -> None:
        unique: dict[str, Candidate] = {}
        for candidate in candidates:
            if candidate.actor_id in unique:
                continue
            unique[candidate.actor_id] = Candidate(
                actor_id=candidate.actor_id,
                relation_band=candidate.relation_band,
                stats=dict(candidate.stats),
                band_strength=float(candidate.band_strength),
            )
        self._candidates = tuple(unique.values())

    @classmethod
    def from_world(cls, world: WorldSnapshot) -> CandidatePool:
        candidates = []
        for npc in world.npcs:
            if npc.actor_id == world.player_id:
                continue
            band = npc.band()
            candidates.append(
                Candidate(
                    actor_id=npc.actor_id,
                    relation_band=band,
                    stats=npc.stats,
                    band_strength=band_strength(npc.relationship, band),
                )
            )
        return cls(candidates)

    @property
    def candidates(self) -> tuple[Candidate, ...]:
        return self._candidates

    def get(self, actor_id: str) -> Candidate | None:
        return next((c for c in self._candidates if c.actor_id == actor_id), None)

    def __iter__(self) -> Iterator[Candidate]:
        return iter(self._candidates)

    def __len__(self) -> int:
        return len(self._candidates)
