from __future__ import annotations

from typing import Any

from storycast.casting import NpcRecord, RelationshipVector, StoryletLibrary, WorldSnapshot, cast_roles
from storycast.contracts import Candidate, RelationBand, RoleRequirement, StatKind, StatThreshold
from storycast.simulation import canonical_fingerprint


def candidate(actor_id: str, band: str = "Friend", strength: float = 0.0, **stats: float) -> Candidate:
    return Candidate(
        actor_id=actor_id,
        relation_band=RelationBand.parse(band),
        stats={StatKind(name): value for name, value in stats.items()},
        band_strength=strength,
    )


def role(
    role_id: str,
    required: bool = True,
    band: str | None = None,
    **thresholds: tuple[float | None, float | None],
) -> RoleRequirement:
    return RoleRequirement(
        role_id=role_id,
        required=required,
        relation_band=RelationBand.parse(band) if band else None,
        stat_thresholds={StatKind(name): StatThreshold(lo, hi) for name, (lo, hi) in thresholds.items()},
    )


def sample_world(seed: int = 42, *, include_rival: bool = True) -> WorldSnapshot:
    npcs = [
        NpcRecord(
            actor_id="npc_mara",
            relationship=RelationshipVector.create(affection=6, trust=5, familiarity=4),
            stats={StatKind.CHARISMA: 70, StatKind.MOOD: 3, StatKind.INTELLIGENCE: 80, StatKind.REPUTATION: 40},
        ),
        NpcRecord(
            actor_id="npc_jun",
            relationship=RelationshipVector.create(affection=2, trust=0),
            stats={StatKind.CHARISMA: 20, StatKind.MOOD: -5, StatKind.INTELLIGENCE: 65, StatKind.REPUTATION: 5},
        ),
        NpcRecord(actor_id="player", relationship=RelationshipVector.create(affection=10, trust=10)),
    ]
    if include_rival:
        npcs.insert(
            0,
            NpcRecord(
                actor_id="npc_rook",
                relationship=RelationshipVector.create(resentment=8, trust=-4, affection=-3),
                stats={StatKind.CHARISMA: 30, StatKind.MOOD: 0, StatKind.INTELLIGENCE: 50, StatKind.REPUTATION: 10},
            ),
        )
    return WorldSnapshot(world_seed=seed, player_id="player", npcs=tuple(npcs))


def world_payload(seed: int = 42) -> dict[str, Any]:
    return {
        "world_seed": seed,
        "player_id": "player",
        "npcs": [
            {
                "id": "npc_rook",
                "relationship": {"resentment": 8, "trust": -4, "affection": -3},
                "stats": {"charisma": 30, "mood": 0, "intelligence": 50, "reputation": 10},
            },
            {
                "id": "npc_mara",
                "relationship": {"affection": 6, "trust": 5, "familiarity": 4},
                "stats": {"charisma": 70, "mood": 3, "intelligence": 80, "reputation": 40},
            },
        ],
    }


def twin_rivals_payload() -> dict[str, Any]:
    return {
        "schema_version": "1.0",
        "storylets": [
            {
                "id": "duel",
                "title": "Duel at Dawn",
                "roles": [{"id": "Challenger", "required": True, "relation_band": "Rival"}],
                "choices": [{"id": "accept", "label": "Accept"}],
            }
        ],
    }


def twin_rivals_world(seed: int = 0) -> WorldSnapshot:
    vector = RelationshipVector.create(resentment=7, trust=-2)
    return WorldSnapshot(
        world_seed=seed,
        player_id="player",
        npcs=(NpcRecord("npc_a", vector), NpcRecord("npc_b", vector)),
    )


def bundled_library() -> StoryletLibrary:
    return StoryletLibrary.bundled()


def cast_fingerprint_in_worker(seed: int) -> str:
    roles = [role("Antagonist", band="Rival"), role("Ally", required=False, band="Friend")]
    candidates = [
        candidate("npc_a", band="Rival", strength=0.5),
        candidate("npc_b", band="Rival", strength=0.5),
        candidate("npc_c", band="Friend", strength=0.7),
        candidate("npc_d", band="Friend", strength=0.7),
    ]
    outcome = cast_roles(roles, candidates, world_seed=seed, storylet_id="brawl", choice_id="fight")
    return canonical_fingerprint(outcome.to_payload())
