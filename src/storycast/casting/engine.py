from __future__ import annotations

import logging
from typing import Iterable, Sequence

from storycast.contracts import (
    AssignmentOutcome,
    Candidate,
    RequiredRoleUnfillable,
    RoleAssignment,
    RoleRequirement,
)
from storycast.core import EngineIntegrityError, TieBreakSource, build_forensic_artifact
from storycast.casting.pool import CandidatePool
from storycast.casting.scoring import CandidateScorer, Ineligible
from storycast.casting.validation import require_valid_roles

logger = logging.getLogger(__name__)


class AssignmentEngine:
    """Greedy, declaration-ordered role casting.

    Each role claims its best eligible candidate before the next role is
    considered. Exact score ties go to the tie-break source. Unfillable
    mandatory roles are collected across the whole pass and reported together;
    a failed outcome never carries partial assignments.
    """

    def __init__(self, scorer: CandidateScorer | None = None) -> None:
        self._scorer = scorer or CandidateScorer()

    @property
    def scorer(self) -> CandidateScorer:
        return self._scorer

    def assign(
        self,
        roles: Sequence[RoleRequirement],
        candidates: CandidatePool | Iterable[Candidate],
        tie_break: TieBreakSource,
    ) -> AssignmentOutcome:
        require_valid_roles(roles, tie_break.storylet_id)
        pool = candidates if isinstance(candidates, CandidatePool) else CandidatePool(candidates)

        claimed: dict[str, str] = {}
        assignments: list[RoleAssignment] = []
        pending: list[str] = []
        unfilled_optional: list[str] = []
        reasons: dict[str, tuple[str, ...]] = {}

        for role in roles:
            scored, rejections = self._score_unclaimed(role, pool, claimed)
            if not scored:
                if role.required:
                    pending.append(role.role_id)
                    reasons[role.role_id] = tuple(rejections)
                    logger.debug("required role %s has no eligible candidate", role.role_id)
                else:
                    unfilled_optional.append(role.role_id)
                    logger.debug("optional role %s left unfilled", role.role_id)
                continue

            best_score = max(score for score, _ in scored)
            tied = sorted((c for score, c in scored if score == best_score), key=lambda c: c.actor_id)
            winner = tie_break.draw(role.role_id, tied)
            claimed[winner.actor_id] = role.role_id
            assignments.append(RoleAssignment(role_id=role.role_id, actor_id=winner.actor_id, score=best_score))
            logger.debug(
                "cast %s as %s (score=%s, tied=%d)", winner.actor_id, role.role_id, best_score, len(tied)
            )

        if pending:
            failure = RequiredRoleUnfillable(role_ids=tuple(pending), pool_empty=len(pool) == 0, reasons=reasons)
            logger.info(
                "casting failed for storylet %s choice %s: %s",
                tie_break.storylet_id,
                tie_break.choice_id,
                failure.explain(),
            )
            return AssignmentOutcome(failure=failure, unfilled_optional=tuple(unfilled_optional))

        outcome = AssignmentOutcome(assignments=tuple(assignments), unfilled_optional=tuple(unfilled_optional))
        self._audit(roles, outcome, tie_break)
        return outcome

    def _score_unclaimed(
        self,
        role: RoleRequirement,
        pool: CandidatePool,
        claimed: dict[str, str],
    ) -> tuple[list[tuple[float, Candidate]], list[str]]:
        scored: list[tuple[float, Candidate]] = []
        rejections: list[str] = []
        for candidate in pool:
            holder = claimed.get(candidate.actor_id)
            if holder is not None:
                rejections.append(f"{candidate.actor_id}: already cast as {holder}")
                continue
            verdict = self._scorer.score(role, candidate)
            if isinstance(verdict, Ineligible):
                rejections.append(verdict.reason)
                continue
            scored.append((verdict, candidate))
        return scored, rejections

    def _audit(self, roles: Sequence[RoleRequirement], outcome: AssignmentOutcome, tie_break: TieBreakSource) -> None:
        problems: list[str] = []
        actor_ids = [a.actor_id for a in outcome.assignments]
        duplicates = sorted({a for a in actor_ids if actor_ids.count(a) > 1})
        if duplicates:
            problems.append(f"actors cast more than once: {duplicates}")
        cast_roles = [a.role_id for a in outcome.assignments]
        for role in roles:
            if role.required and cast_roles.count(role.role_id) != 1:
                problems.append(f"required role '{role.role_id}' cast {cast_roles.count(role.role_id)} times")
        if not problems:
            return
        logger.error("casting integrity violation: %s", "; ".join(problems))
        raise EngineIntegrityError(
            build_forensic_artifact(
                error_code="CASTING_INVARIANT_VIOLATION",
                world_seed=tie_break.world_seed,
                storylet_id=tie_break.storylet_id,
                choice_id=tie_break.choice_id,
                problems=problems,
                outcome_payload=outcome.to_payload(),
                role_ids=[r.role_id for r in roles],
            )
        )


def cast_roles(
    roles: Sequence[RoleRequirement],
    candidates: CandidatePool | Iterable[Candidate],
    *,
    world_seed: int,
    storylet_id: str,
    choice_id: str,
    scorer: CandidateScorer | None = None,
) -> AssignmentOutcome:
    return AssignmentEngine(scorer).assign(roles, candidates, TieBreakSource(world_seed, storylet_id, choice_id))
