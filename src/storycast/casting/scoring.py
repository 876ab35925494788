from __future__ import annotations

from dataclasses import dataclass

from storycast.contracts import (
    Candidate,
    RelationBandConstraint,
    RoleConstraint,
    RoleRequirement,
    ScoringProfile,
    StatRangeConstraint,
    StatThreshold,
)
from storycast.core import resolve_scoring_profile

SCORE_PRECISION = 9


@dataclass(frozen=True, slots=True)
class Ineligible:
    """Candidate cannot fill the role; distinct from any numeric score."""

    reason: str


def stat_margin(value: float, threshold: StatThreshold, natural_range: tuple[float, float]) -> float:
    """How far inside the threshold window ``value`` sits, normalised to [0, 1]."""
    low, high = threshold.minimum, threshold.maximum
    if low is not None and high is not None:
        half_width = (high - low) / 2.0
        if half_width <= 0:
            return 0.0
        margin = min(value - low, high - value) / half_width
    elif low is not None:
        span = natural_range[1] - low
        margin = (value - low) / span if span > 0 else 0.0
    elif high is not None:
        span = high - natural_range[0]
        margin = (high - value) / span if span > 0 else 0.0
    else:
        return 0.0
    return min(1.0, max(0.0, margin))


class CandidateScorer:
    def __init__(self, profile: ScoringProfile | None = None) -> None:
        self._profile = profile or resolve_scoring_profile()
        self._profile.validate()

    @property
    def profile(self) -> ScoringProfile:
        return self._profile

    def score(self, requirement: RoleRequirement, candidate: Candidate) -> float | Ineligible:
        base = self._profile.neutral_base
        margins = 0.0
        for constraint in requirement.constraints():
            verdict = self._evaluate(constraint, candidate)
            if isinstance(verdict, Ineligible):
                return verdict
            if isinstance(constraint, RelationBandConstraint):
                base = verdict
            else:
                margins += verdict
        return round(base + margins, SCORE_PRECISION)

    def _evaluate(self, constraint: RoleConstraint, candidate: Candidate) -> float | Ineligible:
        if isinstance(constraint, RelationBandConstraint):
            if candidate.relation_band != constraint.band:
                return Ineligible(
                    f"{candidate.actor_id}: band {candidate.relation_band.value} != {constraint.band.value}"
                )
            strength = min(1.0, max(0.0, candidate.band_strength))
            return self._profile.band_match_weight + self._profile.band_strength_weight * strength
        if isinstance(constraint, StatRangeConstraint):
            value = candidate.stats.get(constraint.stat)
            if value is None:
                return Ineligible(f"{candidate.actor_id}: missing stat {constraint.stat.value}")
            if not constraint.threshold.contains(value):
                return Ineligible(
                    f"{candidate.actor_id}: {constraint.stat.value}={value:g} outside "
                    f"[{_bound(constraint.threshold.minimum)}, {_bound(constraint.threshold.maximum)}]"
                )
            margin = stat_margin(value, constraint.threshold, constraint.stat.natural_range)
            return self._profile.stat_margin_weight * margin
        raise TypeError(f"unsupported role constraint: {type(constraint).__name__}")


def _bound(value: float | None) -> str:
    return "-" if value is None else f"{value:g}"
