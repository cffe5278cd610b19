"""
Unit tests for the error hierarchy
"""

import pytest

from ich_segmentation.errors import (
    ConfigurationError,
    DataQualityWarning,
    ICHSegmentationError,
    InvalidModelError,
    MissingTransformError,
)


class TestErrorHierarchy:
    """Test exception relationships"""

    def test_missing_transform_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            raise MissingTransformError("no transforms")

    def test_common_base(self):
        assert issubclass(ConfigurationError, ICHSegmentationError)
        assert issubclass(InvalidModelError, ICHSegmentationError)
        assert not issubclass(InvalidModelError, ConfigurationError)

    def test_data_quality_is_warning(self):
        assert issubclass(DataQualityWarning, UserWarning)
        assert not issubclass(DataQualityWarning, ICHSegmentationError)

    def test_message(self):
        assert str(InvalidModelError("bad bundle")) == "bad bundle"
