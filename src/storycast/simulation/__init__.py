from .replay import ReplayAction, ReplayHarness, canonical_fingerprint

__all__ = ["ReplayAction", "ReplayHarness", "canonical_fingerprint"]
