from .calibration import CastingCalibrationService

__all__ = ["CastingCalibrationService"]
