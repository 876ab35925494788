from .errors import EngineIntegrityError, build_forensic_artifact, persist_forensic_artifact
from .events import CAST, CASTING_FAILED, EventBus, casting_event_for
from .profiles import DEFAULT_PROFILE_ID, default_scoring_profiles, resolve_scoring_profile
from .randomness import PythonRandomSource, TieBreakSource, derive_seed, seeded_random

__all__ = [
    "CAST",
    "CASTING_FAILED",
    "DEFAULT_PROFILE_ID",
    "EngineIntegrityError",
    "EventBus",
    "PythonRandomSource",
    "TieBreakSource",
    "build_forensic_artifact",
    "casting_event_for",
    "default_scoring_profiles",
    "derive_seed",
    "persist_forensic_artifact",
    "resolve_scoring_profile",
    "seeded_random",
]
