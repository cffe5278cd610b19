"""Exception and warning types raised by the ICH prediction pipeline."""


class ICHSegmentationError(Exception):
    """Base class for pipeline errors"""


class ConfigurationError(ICHSegmentationError):
    """Invalid or incomplete pipeline configuration"""


class MissingTransformError(ConfigurationError):
    """Native-space output requested without transforms or interpolator"""


class InvalidModelError(ICHSegmentationError):
    """Model bundle is missing a classifier or cutoff table"""


class DataQualityWarning(UserWarning):
    """Feature rows had to be corrected before prediction"""
