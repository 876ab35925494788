from __future__ import annotations

import pytest

from storycast.casting import CandidatePool, NpcRecord, RelationshipVector, WorldSnapshot, band_strength, derive_band
from storycast.contracts import RelationBand, StatKind, ValidationError
from tests.helpers import candidate, world_payload


@pytest.mark.parametrize(
    ("axes", "expected"),
    [
        ({"resentment": 6}, RelationBand.RIVAL),
        ({"resentment": 9, "affection": 9, "trust": 9}, RelationBand.RIVAL),
        ({"attraction": 7, "affection": 2}, RelationBand.ROMANCE),
        ({"affection": 9, "trust": 3}, RelationBand.FAMILY),
        ({"affection": 4, "trust": 2}, RelationBand.FRIEND),
        ({"affection": 4, "trust": 1}, RelationBand.ACQUAINTANCE),
        ({}, RelationBand.ACQUAINTANCE),
        ({"affection": -7}, RelationBand.STRANGER),
    ],
)
def test_derive_band(axes, expected) -> None:
    assert derive_band(RelationshipVector.create(**axes)) == expected


def test_relationship_axes_are_clamped() -> None:
    vector = RelationshipVector.create(affection=15, resentment=-40)
    assert vector.affection == 10.0
    assert vector.resentment == -10.0
    with pytest.raises(ValueError):
        RelationshipVector.create(loyalty=3)


def test_band_strength_is_bounded_and_monotonic() -> None:
    extreme = RelationshipVector.create(resentment=10, trust=-10, affection=-10)
    assert band_strength(extreme, RelationBand.RIVAL) == pytest.approx(1.0)
    mild = RelationshipVector.create(resentment=6, trust=0, affection=0)
    hot = RelationshipVector.create(resentment=9, trust=0, affection=0)
    assert band_strength(hot, RelationBand.RIVAL) > band_strength(mild, RelationBand.RIVAL)
    assert band_strength(RelationshipVector.create(familiarity=-10), RelationBand.STRANGER) == pytest.approx(1.0)


def test_pool_from_world_excludes_player_and_derives_bands() -> None:
    world = WorldSnapshot(
        world_seed=1,
        player_id="player",
        npcs=(
            NpcRecord("player", RelationshipVector.create(affection=10, trust=10)),
            NpcRecord("npc_rival", RelationshipVector.create(resentment=8)),
            NpcRecord("npc_ally", RelationshipVector.create(trust=8), relation_band=RelationBand.ALLY),
        ),
    )
    pool = CandidatePool.from_world(world)
    assert [c.actor_id for c in pool] == ["npc_rival", "npc_ally"]
    assert pool.get("npc_rival").relation_band == RelationBand.RIVAL
    assert pool.get("npc_ally").relation_band == RelationBand.ALLY
    assert 0.0 < pool.get("npc_ally").band_strength <= 1.0
    assert pool.get("player") is None


def test_pool_snapshot_is_isolated_from_later_mutation() -> None:
    stats = {StatKind.CHARISMA: 50.0}
    world = WorldSnapshot(world_seed=1, player_id="player", npcs=(NpcRecord("npc_a", stats=stats),))
    pool = CandidatePool.from_world(world)
    stats[StatKind.CHARISMA] = 0.0
    assert pool.get("npc_a").stats[StatKind.CHARISMA] == 50.0


def test_pool_keeps_first_duplicate() -> None:
    pool = CandidatePool([candidate("twin", band="Rival"), candidate("twin", band="Friend")])
    assert len(pool) == 1
    assert pool.get("twin").relation_band == RelationBand.RIVAL


def test_world_snapshot_from_payload() -> None:
    world = WorldSnapshot.from_payload(world_payload(seed=5))
    assert world.world_seed == 5
    assert [n.actor_id for n in world.npcs] == ["npc_rook", "npc_mara"]
    assert world.npcs[0].band() == RelationBand.RIVAL
    assert world.npcs[1].stats[StatKind.CHARISMA] == 70.0


def test_world_snapshot_rejects_bad_records() -> None:
    payload = {"npcs": [{"id": "npc_a", "stats": {"stamina": 3}}, {"relationship": {}}]}
    with pytest.raises(ValidationError) as exc:
        WorldSnapshot.from_payload(payload)
    assert [i.code for i in exc.value.issues] == ["NPC_RECORD_INVALID", "NPC_ID_MISSING"]


@pytest.mark.parametrize(
    ("payload", "codes"),
    [
        ({"npcs": "npc_a"}, ["NPCS_MALFORMED"]),
        ({"npcs": ["oops"]}, ["NPC_RECORD_INVALID"]),
        ({"npcs": [{"id": "npc_a", "relationship": [1, 2]}]}, ["NPC_RECORD_INVALID"]),
        ({"npcs": [{"id": "npc_a", "stats": "smart"}]}, ["NPC_RECORD_INVALID"]),
        ({"npcs": [{"id": "npc_a", "stats": {"mood": float("nan")}}]}, ["NPC_RECORD_INVALID"]),
        ({"npcs": [{"id": "npc_a", "relation_band": 7}]}, ["NPC_RECORD_INVALID"]),
        ({"world_seed": "seven", "npcs": []}, ["WORLD_SEED_MALFORMED"]),
        (["npc_a"], ["WORLD_MALFORMED"]),
    ],
)
def test_world_snapshot_shape_errors_are_validation_errors(payload, codes) -> None:
    with pytest.raises(ValidationError) as exc:
        WorldSnapshot.from_payload(payload)
    assert [i.code for i in exc.value.issues] == codes


def test_world_snapshot_treats_null_collections_as_empty() -> None:
    assert WorldSnapshot.from_payload({"npcs": None}).npcs == ()
    world = WorldSnapshot.from_payload({"npcs": [{"id": "npc_a", "relationship": None, "stats": None}]})
    assert world.npcs[0].relationship == RelationshipVector()
    assert world.npcs[0].stats == {}
