from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Protocol, Sequence


class RelationBand(str, Enum):
    STRANGER = "Stranger"
    ACQUAINTANCE = "Acquaintance"
    FRIEND = "Friend"
    RIVAL = "Rival"
    ALLY = "Ally"
    ROMANCE = "Romance"
    FAMILY = "Family"

    @classmethod
    def parse(cls, raw: str) -> RelationBand:
        lowered = raw.strip().lower()
        for band in cls:
            if band.value.lower() == lowered:
                return band
        raise ValueError(f"unknown relation band '{raw}'")


class StatKind(str, Enum):
    HEALTH = "health"
    INTELLIGENCE = "intelligence"
    CHARISMA = "charisma"
    WEALTH = "wealth"
    MOOD = "mood"
    APPEARANCE = "appearance"
    REPUTATION = "reputation"
    WISDOM = "wisdom"
    CURIOSITY = "curiosity"
    ENERGY = "energy"
    LIBIDO = "libido"

    @property
    def natural_range(self) -> tuple[float, float]:
        if self is StatKind.MOOD:
            return (-10.0, 10.0)
        if self is StatKind.REPUTATION:
            return (-100.0, 100.0)
        return (0.0, 100.0)


class RandomSource(Protocol):
    def rand(self) -> float: ...

    def randint(self, a: int, b: int) -> int: ...

    def choice(self, items: Sequence[Any]) -> Any: ...

    def spawn(self, substream_id: str) -> RandomSource: ...


@dataclass(frozen=True, slots=True)
class StatThreshold:
    minimum: float | None = None
    maximum: float | None = None

    def contains(self, value: float) -> bool:
        if self.minimum is not None and value < self.minimum:
            return False
        if self.maximum is not None and value > self.maximum:
            return False
        return True

    def is_inverted(self) -> bool:
        return self.minimum is not None and self.maximum is not None and self.minimum > self.maximum


@dataclass(frozen=True, slots=True)
class RelationBandConstraint:
    band: RelationBand


@dataclass(frozen=True, slots=True)
class StatRangeConstraint:
    stat: StatKind
    threshold: StatThreshold


RoleConstraint = RelationBandConstraint | StatRangeConstraint


@dataclass(frozen=True, slots=True)
class RoleRequirement:
    role_id: str
    required: bool = True
    relation_band: RelationBand | None = None
    stat_thresholds: Mapping[StatKind, StatThreshold] = field(default_factory=dict)

    def constraints(self) -> tuple[RoleConstraint, ...]:
        """Constraint variants in evaluation order: band first, then stats by name."""
        ordered: list[RoleConstraint] = []
        if self.relation_band is not None:
            ordered.append(RelationBandConstraint(self.relation_band))
        for stat in sorted(self.stat_thresholds, key=lambda s: s.value):
            ordered.append(StatRangeConstraint(stat, self.stat_thresholds[stat]))
        return tuple(ordered)


@dataclass(frozen=True, slots=True)
class Candidate:
    actor_id: str
    relation_band: RelationBand
    stats: Mapping[StatKind, float] = field(default_factory=dict)
    band_strength: float = 0.0


@dataclass(frozen=True, slots=True)
class RoleAssignment:
    role_id: str
    actor_id: str
    score: float

    def to_payload(self) -> dict[str, Any]:
        return {"role_id": self.role_id, "actor_id": self.actor_id, "score": self.score}


@dataclass(frozen=True, slots=True)
class RequiredRoleUnfillable:
    role_ids: tuple[str, ...]
    pool_empty: bool = False
    reasons: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    @property
    def code(self) -> str:
        return "NO_CANDIDATES_AVAILABLE" if self.pool_empty else "REQUIRED_ROLE_UNFILLABLE"

    def explain(self) -> str:
        names = ", ".join(self.role_ids)
        if self.pool_empty:
            return f"no candidates available to cast required roles: {names}"
        return f"no eligible candidate for required roles: {names}"


@dataclass(frozen=True, slots=True)
class AssignmentOutcome:
    assignments: tuple[RoleAssignment, ...] = ()
    failure: RequiredRoleUnfillable | None = None
    unfilled_optional: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.failure is None

    def actor_for(self, role_id: str) -> str | None:
        for assignment in self.assignments:
            if assignment.role_id == role_id:
                return assignment.actor_id
        return None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "ok": self.ok,
            "assignments": [a.to_payload() for a in self.assignments],
            "unfilled_optional": list(self.unfilled_optional),
        }
        if self.failure is not None:
            payload["failure"] = {
                "code": self.failure.code,
                "role_ids": list(self.failure.role_ids),
                "reasons": {k: list(v) for k, v in sorted(self.failure.reasons.items())},
            }
        return payload


@dataclass(frozen=True, slots=True)
class ChoiceDefinition:
    choice_id: str
    label: str


@dataclass(frozen=True, slots=True)
class StoryletDefinition:
    storylet_id: str
    title: str
    roles: tuple[RoleRequirement, ...] = ()
    choices: tuple[ChoiceDefinition, ...] = ()

    def choice(self, choice_id: str) -> ChoiceDefinition | None:
        return next((c for c in self.choices if c.choice_id == choice_id), None)


@dataclass(slots=True)
class ChoiceResolution:
    storylet_id: str
    choice_id: str
    success: bool
    message: str
    role_assignments: list[dict[str, Any]] = field(default_factory=list)
    unfillable_roles: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {
            "storylet_id": self.storylet_id,
            "choice_id": self.choice_id,
            "success": self.success,
            "message": self.message,
            "role_assignments": list(self.role_assignments),
            "unfillable_roles": list(self.unfillable_roles),
            "data": dict(self.data),
        }


@dataclass(frozen=True, slots=True)
class CastingEvent:
    event_id: str
    time: datetime
    storylet_id: str
    choice_id: str
    event_type: str
    actors: tuple[str, ...] = ()
    claims: tuple[str, ...] = ()


@dataclass(slots=True)
class ValidationIssue:
    code: str
    severity: str
    field_path: str
    entity_id: str
    message: str


@dataclass(slots=True)
class ValidationResult:
    ok: bool
    issues: list[ValidationIssue]


class ValidationError(ValueError):
    def __init__(self, issues: list[ValidationIssue]) -> None:
        message = "; ".join(f"{i.code}:{i.entity_id}:{i.message}" for i in issues)
        super().__init__(message)
        self.issues = issues


@dataclass(slots=True)
class ScoringProfile:
    profile_id: str
    band_match_weight: float
    band_strength_weight: float
    neutral_base: float
    stat_margin_weight: float

    def validate(self) -> None:
        values = [
            self.band_match_weight,
            self.band_strength_weight,
            self.neutral_base,
            self.stat_margin_weight,
        ]
        if not all(math.isfinite(v) for v in values):
            raise ValueError("scoring weights must be finite")
        if any(v < 0 for v in values):
            raise ValueError("scoring weights must be non-negative")
        if self.band_match_weight <= 0:
            raise ValueError("band_match_weight must be positive")


@dataclass(slots=True)
class CalibrationRunRequest:
    storylet_id: str
    choice_id: str
    sample_count: int
    base_seed: int
    scoring_profile_id: str = "balanced"


@dataclass(slots=True)
class CalibrationRunResult:
    run_id: str
    storylet_id: str
    choice_id: str
    sample_count: int
    base_seed: int
    scoring_profile_id: str
    success_rate: float
    role_fill_rates: dict[str, float]
    winner_distribution: dict[str, dict[str, int]]
    failure_distribution: dict[str, int]


@dataclass(slots=True)
class ForensicArtifact:
    artifact_id: str
    timestamp: datetime
    engine_scope: str
    error_code: str
    message: str
    state_snapshot: Mapping[str, Any]
    context: Mapping[str, Any]
    identifiers: Mapping[str, str]
    causal_fragment: Sequence[str]
