from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

from storycast.contracts import (
    AssignmentOutcome,
    ChoiceDefinition,
    ChoiceResolution,
    StoryletDefinition,
    ValidationError,
)
from storycast.core import EngineIntegrityError, EventBus, TieBreakSource, persist_forensic_artifact
from storycast.casting import AssignmentEngine, CandidatePool, CandidateScorer, StoryletLibrary, WorldSnapshot

logger = logging.getLogger(__name__)

OutcomeApplier = Callable[[StoryletDefinition, ChoiceDefinition, AssignmentOutcome], None]


class ChoiceResolver:
    """Casts a storylet's roles as part of resolving a player's choice.

    The outcome applier runs only after every mandatory role is cast; a failed
    casting leaves world state untouched and is reported as an unsuccessful
    resolution with an explanation.
    """

    def __init__(
        self,
        library: StoryletLibrary,
        *,
        scorer: CandidateScorer | None = None,
        event_bus: EventBus | None = None,
        forensic_dir: Path | None = None,
    ) -> None:
        self.library = library
        self.engine = AssignmentEngine(scorer)
        self.event_bus = event_bus or EventBus()
        self.forensic_dir = forensic_dir

    def event_view(self, storylet_id: str) -> dict[str, Any]:
        storylet = self.library.get(storylet_id)
        return {
            "storylet_id": storylet.storylet_id,
            "title": storylet.title,
            "choices": [{"id": c.choice_id, "label": c.label} for c in storylet.choices],
            "roles": [r.role_id for r in storylet.roles],
        }

    def resolve_choice(
        self,
        storylet_id: str,
        choice_id: str,
        world: WorldSnapshot,
        apply_outcome: OutcomeApplier | None = None,
    ) -> ChoiceResolution:
        try:
            storylet = self.library.get(storylet_id)
        except ValidationError as exc:
            return ChoiceResolution(storylet_id, choice_id, False, str(exc), data={"error_code": "UNKNOWN_STORYLET"})
        choice = storylet.choice(choice_id)
        if choice is None:
            return ChoiceResolution(
                storylet_id,
                choice_id,
                False,
                f"storylet '{storylet_id}' has no choice '{choice_id}'",
                data={"error_code": "UNKNOWN_CHOICE"},
            )

        tie_break = TieBreakSource(world.world_seed, storylet_id, choice_id)
        try:
            outcome = self.engine.assign(storylet.roles, CandidatePool.from_world(world), tie_break)
        except EngineIntegrityError as exc:
            data: dict[str, Any] = {"error_code": exc.artifact.error_code}
            if self.forensic_dir is not None:
                data["forensic_path"] = str(persist_forensic_artifact(exc.artifact, self.forensic_dir))
            return ChoiceResolution(storylet_id, choice_id, False, f"integrity failure: {exc.artifact.error_code}", data=data)

        if outcome.failure is not None:
            resolution = ChoiceResolution(
                storylet_id,
                choice_id,
                False,
                f"choice '{choice.label}' cannot proceed: {outcome.failure.explain()}",
                unfillable_roles=list(outcome.failure.role_ids),
                data={"error_code": outcome.failure.code, "reasons": {k: list(v) for k, v in outcome.failure.reasons.items()}},
            )
            self.event_bus.publish(resolution)
            return resolution

        if apply_outcome is not None:
            apply_outcome(storylet, choice, outcome)
        logger.debug("resolved %s/%s with %d roles cast", storylet_id, choice_id, len(outcome.assignments))
        resolution = ChoiceResolution(
            storylet_id,
            choice_id,
            True,
            f"{storylet.title}: {choice.label}",
            role_assignments=[a.to_payload() for a in outcome.assignments],
            data={"unfilled_optional": list(outcome.unfilled_optional)},
        )
        self.event_bus.publish(resolution)
        return resolution

