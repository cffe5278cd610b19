from .classifiers import ModelType, RandomForestModel, LogisticModel
from .data_structures import ModelBundle, PredictionImages, PredictionResult
from .errors import (
    ICHSegmentationError,
    ConfigurationError,
    MissingTransformError,
    InvalidModelError,
    DataQualityWarning,
)
from .models import ModelRegistry, resolve_model
from .parameters import PredictionParameters
from .pipeline import ich_predict, predict_with_parameters

__version__ = "0.1"
