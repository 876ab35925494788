from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, Sequence
from uuid import uuid4

from storycast.contracts import ForensicArtifact

CASTING_SCOPE = "casting"


class EngineIntegrityError(RuntimeError):
    """A casting pass produced a result that breaks its own guarantees."""

    def __init__(self, artifact: ForensicArtifact) -> None:
        super().__init__(artifact.message)
        self.artifact = artifact


def build_forensic_artifact(
    *,
    error_code: str,
    world_seed: int,
    storylet_id: str,
    choice_id: str,
    problems: Sequence[str],
    outcome_payload: dict[str, Any] | None = None,
    role_ids: Sequence[str] = (),
) -> ForensicArtifact:
    return ForensicArtifact(
        artifact_id=str(uuid4()),
        timestamp=datetime.now(UTC),
        engine_scope=CASTING_SCOPE,
        error_code=error_code,
        message="; ".join(problems),
        state_snapshot=outcome_payload or {},
        context={"roles": list(role_ids)},
        identifiers={"world_seed": str(world_seed), "storylet_id": storylet_id, "choice_id": choice_id},
        causal_fragment=list(problems),
    )


def persist_forensic_artifact(artifact: ForensicArtifact, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    storylet_id = artifact.identifiers.get("storylet_id", "unknown")
    path = output_dir / f"forensic_{storylet_id}_{artifact.artifact_id}.json"
    path.write_text(json.dumps(asdict(artifact), default=str, indent=2, sort_keys=True), encoding="utf-8")
    return path
