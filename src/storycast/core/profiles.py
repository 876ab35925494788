from __future__ import annotations

from storycast.contracts import ScoringProfile

DEFAULT_PROFILE_ID = "balanced"


def default_scoring_profiles() -> dict[str, ScoringProfile]:
    return {
        "balanced": ScoringProfile(
            profile_id="balanced",
            band_match_weight=1.0,
            band_strength_weight=1.0,
            neutral_base=1.0,
            stat_margin_weight=0.5,
        ),
        "relationship_first": ScoringProfile(
            profile_id="relationship_first",
            band_match_weight=1.0,
            band_strength_weight=2.0,
            neutral_base=0.5,
            stat_margin_weight=0.25,
        ),
        "stat_first": ScoringProfile(
            profile_id="stat_first",
            band_match_weight=1.0,
            band_strength_weight=0.25,
            neutral_base=1.0,
            stat_margin_weight=1.5,
        ),
    }


def resolve_scoring_profile(profile_id: str | None = None) -> ScoringProfile:
    profiles = default_scoring_profiles()
    profile = profiles.get(profile_id or DEFAULT_PROFILE_ID)
    if profile is None:
        raise ValueError(f"unknown scoring profile '{profile_id}'")
    profile.validate()
    return profile
