from .types import (
    AssignmentOutcome,
    CalibrationRunRequest,
    CalibrationRunResult,
    Candidate,
    CastingEvent,
    ChoiceDefinition,
    ChoiceResolution,
    ForensicArtifact,
    RandomSource,
    RelationBand,
    RelationBandConstraint,
    RequiredRoleUnfillable,
    RoleAssignment,
    RoleConstraint,
    RoleRequirement,
    ScoringProfile,
    StatKind,
    StatRangeConstraint,
    StatThreshold,
    StoryletDefinition,
    ValidationError,
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    "AssignmentOutcome",
    "CalibrationRunRequest",
    "CalibrationRunResult",
    "Candidate",
    "CastingEvent",
    "ChoiceDefinition",
    "ChoiceResolution",
    "ForensicArtifact",
    "RandomSource",
    "RelationBand",
    "RelationBandConstraint",
    "RequiredRoleUnfillable",
    "RoleAssignment",
    "RoleConstraint",
    "RoleRequirement",
    "ScoringProfile",
    "StatKind",
    "StatRangeConstraint",
    "StatThreshold",
    "StoryletDefinition",
    "ValidationError",
    "ValidationIssue",
    "ValidationResult",
]
