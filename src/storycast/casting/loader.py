from __future__ import annotations

import hashlib
import json
import logging
import math
from importlib import resources
from pathlib import Path
from typing import Any, Mapping

from storycast.contracts import (
    ChoiceDefinition,
    RelationBand,
    RoleRequirement,
    StatKind,
    StatThreshold,
    StoryletDefinition,
    ValidationError,
    ValidationIssue,
)
from storycast.casting.validation import lint_role_contention, validate_roles

logger = logging.getLogger(__name__)

BUNDLED_STORYLETS = "storylets.json"
EXPECTED_SCHEMA_VERSION = "1.0"


def parse_role(raw: Mapping[str, Any], path: str, storylet_id: str) -> tuple[RoleRequirement | None, list[ValidationIssue]]:
    issues: list[ValidationIssue] = []
    if not isinstance(raw, Mapping):
        return None, [_issue("ROLE_MALFORMED", path, storylet_id, "role entry must be an object")]
    role_id = raw.get("id")
    if not isinstance(role_id, str) or not role_id:
        return None, [_issue("ROLE_ID_MISSING", f"{path}.id", storylet_id, "role id must be a non-empty string")]

    required = raw.get("required", True)
    if not isinstance(required, bool):
        issues.append(_issue("ROLE_REQUIRED_MALFORMED", f"{path}.required", storylet_id, "required must be a boolean"))

    band: RelationBand | None = None
    raw_band = raw.get("relation_band")
    if raw_band is not None:
        try:
            band = RelationBand.parse(str(raw_band))
        except ValueError as exc:
            issues.append(_issue("UNKNOWN_RELATION_BAND", f"{path}.relation_band", storylet_id, str(exc)))

    thresholds: dict[StatKind, StatThreshold] = {}
    raw_thresholds = raw.get("stat_thresholds") or {}
    if not isinstance(raw_thresholds, Mapping):
        issues.append(
            _issue("STAT_THRESHOLDS_MALFORMED", f"{path}.stat_thresholds", storylet_id, "stat_thresholds must be an object")
        )
        raw_thresholds = {}
    for name, bounds in raw_thresholds.items():
        stat_path = f"{path}.stat_thresholds.{name}"
        try:
            stat = StatKind(str(name).lower())
        except ValueError:
            issues.append(_issue("UNKNOWN_STAT", stat_path, storylet_id, f"unknown statistic '{name}'"))
            continue
        if not isinstance(bounds, Mapping) or set(bounds) - {"min", "max"}:
            issues.append(_issue("STAT_THRESHOLD_MALFORMED", stat_path, storylet_id, "threshold accepts only min/max"))
            continue
        try:
            thresholds[stat] = StatThreshold(
                minimum=_optional_float(bounds.get("min")),
                maximum=_optional_float(bounds.get("max")),
            )
        except (TypeError, ValueError):
            issues.append(_issue("STAT_THRESHOLD_MALFORMED", stat_path, storylet_id, "min/max must be finite numbers"))

    if issues:
        return None, issues
    return RoleRequirement(role_id=role_id, required=required, relation_band=band, stat_thresholds=thresholds), []


def parse_storylet(payload: Mapping[str, Any]) -> StoryletDefinition:
    if not isinstance(payload, Mapping):
        raise ValidationError([_issue("STORYLET_MALFORMED", "", "", "storylet entry must be an object")])
    storylet_id = payload.get("id")
    if not isinstance(storylet_id, str) or not storylet_id:
        raise ValidationError([_issue("STORYLET_ID_MISSING", "id", "", "storylet id must be a non-empty string")])

    issues: list[ValidationIssue] = []
    roles: list[RoleRequirement] = []
    raw_roles = payload.get("roles")
    if raw_roles is None:
        raw_roles = []
    if not isinstance(raw_roles, list):
        raise ValidationError([_issue("ROLES_MALFORMED", "roles", storylet_id, "roles must be a list")])
    for idx, raw in enumerate(raw_roles):
        role, role_issues = parse_role(raw, f"roles[{idx}]", storylet_id)
        issues.extend(role_issues)
        if role is not None:
            roles.append(role)

    choices: list[ChoiceDefinition] = []
    raw_choices = payload.get("choices")
    if raw_choices is None:
        raw_choices = []
    if not isinstance(raw_choices, list):
        issues.append(_issue("CHOICES_MALFORMED", "choices", storylet_id, "choices must be a list"))
        raw_choices = []
    for idx, raw in enumerate(raw_choices):
        choice_id = raw.get("id") if isinstance(raw, Mapping) else None
        if not isinstance(choice_id, str) or not choice_id:
            issues.append(_issue("CHOICE_ID_MISSING", f"choices[{idx}].id", storylet_id, "choice id is required"))
            continue
        choices.append(ChoiceDefinition(choice_id=choice_id, label=str(raw.get("label", choice_id))))

    result = validate_roles(roles, storylet_id)
    issues.extend(i for i in result.issues if i.severity == "blocking")
    if issues:
        raise ValidationError(issues)
    for warning in (i for i in result.issues if i.severity != "blocking"):
        logger.warning("storylet %s: %s", storylet_id, warning.message)
    return StoryletDefinition(
        storylet_id=storylet_id,
        title=str(payload.get("title", storylet_id)),
        roles=tuple(roles),
        choices=tuple(choices),
    )


def load_storylet_file(path: Path) -> StoryletDefinition:
    return parse_storylet(json.loads(path.read_text(encoding="utf-8")))


class StoryletLibrary:
    """Validated storylet definitions, checked once at load time."""

    def __init__(self, storylets: list[StoryletDefinition], checksum: str) -> None:
        self._storylets = {s.storylet_id: s for s in storylets}
        self.checksum = checksum
        self.warnings: list[ValidationIssue] = []
        for storylet in storylets:
            self.warnings.extend(lint_role_contention(storylet))

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> StoryletLibrary:
        if not isinstance(payload, Mapping):
            raise ValidationError([_issue("LIBRARY_MALFORMED", "", "", "storylet library must be an object")])
        schema_version = str(payload.get("schema_version", EXPECTED_SCHEMA_VERSION))
        if schema_version != EXPECTED_SCHEMA_VERSION:
            raise ValidationError(
                [_issue("SCHEMA_VERSION_MISMATCH", "schema_version", "", f"expected {EXPECTED_SCHEMA_VERSION}, got {schema_version}")]
            )
        raw_storylets = payload.get("storylets")
        if raw_storylets is None:
            raw_storylets = []
        if not isinstance(raw_storylets, list):
            raise ValidationError([_issue("STORYLETS_MALFORMED", "storylets", "", "storylets must be a list")])
        issues: list[ValidationIssue] = []
        storylets: list[StoryletDefinition] = []
        seen: set[str] = set()
        for idx, raw in enumerate(raw_storylets):
            if not isinstance(raw, Mapping):
                issues.append(_issue("STORYLET_MALFORMED", f"storylets[{idx}]", "", "storylet entry must be an object"))
                continue
            try:
                storylet = parse_storylet(raw)
            except ValidationError as exc:
                issues.extend(exc.issues)
                continue
            if storylet.storylet_id in seen:
                issues.append(
                    _issue("STORYLET_ID_DUPLICATE", "storylets", storylet.storylet_id, "storylet declared twice")
                )
                continue
            seen.add(storylet.storylet_id)
            storylets.append(storylet)
        if issues:
            raise ValidationError(issues)
        canonical = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
        library = cls(storylets, hashlib.sha256(canonical).hexdigest())
        logger.info("loaded %d storylets (%d authoring warnings)", len(library), len(library.warnings))
        return library

    @classmethod
    def from_path(cls, path: Path) -> StoryletLibrary:
        return cls.from_payload(json.loads(path.read_text(encoding="utf-8")))

    @classmethod
    def bundled(cls) -> StoryletLibrary:
        package = resources.files("storycast.resources")
        return cls.from_payload(json.loads((package / BUNDLED_STORYLETS).read_text(encoding="utf-8")))

    def get(self, storylet_id: str) -> StoryletDefinition:
        storylet = self._storylets.get(storylet_id)
        if storylet is None:
            raise ValidationError(
                [_issue("UNKNOWN_STORYLET", "storylet_id", storylet_id, f"storylet '{storylet_id}' is not loaded")]
            )
        return storylet

    def storylet_ids(self) -> list[str]:
        return sorted(self._storylets)

    def __len__(self) -> int:
        return len(self._storylets)


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise TypeError("boolean is not a numeric bound")
    bound = float(value)
    if not math.isfinite(bound):
        raise ValueError(f"bound {value!r} is not finite")
    return bound


def _issue(code: str, field_path: str, entity_id: str, message: str) -> ValidationIssue:
    return ValidationIssue(code=code, severity="blocking", field_path=field_path, entity_id=entity_id, message=message)
