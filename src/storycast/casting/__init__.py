from .engine import AssignmentEngine, cast_roles
from .loader import StoryletLibrary, load_storylet_file, parse_storylet
from .pool import CandidatePool, NpcRecord, RelationshipVector, WorldSnapshot, band_strength, derive_band
from .scoring import CandidateScorer, Ineligible, stat_margin
from .validation import lint_role_contention, require_valid_roles, validate_roles

__all__ = [
    "AssignmentEngine",
    "CandidatePool",
    "CandidateScorer",
    "Ineligible",
    "NpcRecord",
    "RelationshipVector",
    "StoryletLibrary",
    "WorldSnapshot",
    "band_strength",
    "cast_roles",
    "derive_band",
    "lint_role_contention",
    "load_storylet_file",
    "parse_storylet",
    "require_valid_roles",
    "stat_margin",
    "validate_roles",
]
