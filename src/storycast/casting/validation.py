from __future__ import annotations

from typing import Sequence

from storycast.contracts import (
    RoleRequirement,
    StoryletDefinition,
    ValidationError,
    ValidationIssue,
    ValidationResult,
)


def validate_roles(roles: Sequence[RoleRequirement], storylet_id: str = "") -> ValidationResult:
    """Structural checks on a role list; blocking issues make the storylet unloadable."""
    issues: list[ValidationIssue] = []
    seen: set[str] = set()
    for idx, role in enumerate(roles):
        path = f"roles[{idx}]"
        if not role.role_id:
            issues.append(_issue("ROLE_ID_MISSING", "blocking", f"{path}.id", storylet_id, "role id is required"))
            continue
        if role.role_id in seen:
            issues.append(
                _issue("ROLE_ID_DUPLICATE", "blocking", f"{path}.id", storylet_id, f"role '{role.role_id}' declared twice")
            )
        seen.add(role.role_id)
        for stat, threshold in sorted(role.stat_thresholds.items(), key=lambda item: item[0].value):
            stat_path = f"{path}.stat_thresholds.{stat.value}"
            if threshold.is_inverted():
                issues.append(
                    _issue(
                        "STAT_THRESHOLD_INVERTED",
                        "blocking",
                        stat_path,
                        storylet_id,
                        f"role '{role.role_id}' min {threshold.minimum:g} > max {threshold.maximum:g}",
                    )
                )
                continue
            low, high = stat.natural_range
            if (threshold.minimum is not None and threshold.minimum > high) or (
                threshold.maximum is not None and threshold.maximum < low
            ):
                issues.append(
                    _issue(
                        "STAT_THRESHOLD_UNREACHABLE",
                        "warning",
                        stat_path,
                        storylet_id,
                        f"role '{role.role_id}' threshold lies outside {stat.value} range [{low:g}, {high:g}]",
                    )
                )
    return ValidationResult(ok=not any(i.severity == "blocking" for i in issues), issues=issues)


def require_valid_roles(roles: Sequence[RoleRequirement], storylet_id: str = "") -> list[ValidationIssue]:
    result = validate_roles(roles, storylet_id)
    if not result.ok:
        raise ValidationError([i for i in result.issues if i.severity == "blocking"])
    return result.issues


def lint_role_contention(storylet: StoryletDefinition) -> list[ValidationIssue]:
    """Authoring warnings for mandatory roles likely to starve each other.

    Casting is greedy in declaration order, so two mandatory roles with the
    same band and no stat thresholds compete for one pool; the later one fails
    whenever a single matching candidate exists.
    """
    warnings: list[ValidationIssue] = []
    unconstrained_by_band: dict[str, str] = {}
    for idx, role in enumerate(storylet.roles):
        if not role.required:
            continue
        if not role.constraints():
            warnings.append(
                _issue(
                    "EMPTY_ROLE_CONSTRAINTS",
                    "warning",
                    f"roles[{idx}]",
                    storylet.storylet_id,
                    f"required role '{role.role_id}' accepts any candidate",
                )
            )
            continue
        if role.stat_thresholds or role.relation_band is None:
            continue
        band = role.relation_band.value
        earlier = unconstrained_by_band.get(band)
        if earlier is not None:
            warnings.append(
                _issue(
                    "ROLE_CONTENTION",
                    "warning",
                    f"roles[{idx}]",
                    storylet.storylet_id,
                    f"required role '{role.role_id}' competes with '{earlier}' for {band} candidates",
                )
            )
        else:
            unconstrained_by_band[band] = role.role_id
    return warnings


def _issue(code: str, severity: str, field_path: str, entity_id: str, message: str) -> ValidationIssue:
    return ValidationIssue(code=code, severity=severity, field_path=field_path, entity_id=entity_id, message=message)
