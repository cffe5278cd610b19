import math
from dataclasses import dataclass, field, replace
from typing import Dict, Optional
import pandas as pd
import SimpleITK as sitk

from .classifiers import ModelType, ProbabilityModel, make_probability_model
from .components import count_foreground
from .errors import InvalidModelError


def _as_cutoff_table(cutoffs) -> pd.DataFrame:
    if isinstance(cutoffs, pd.DataFrame):
        return cutoffs
    try:
        return pd.DataFrame(cutoffs)
    except (TypeError, ValueError) as e:
        raise InvalidModelError(f"Cutoff table could not be read: {e}") from e


@dataclass(frozen=True, eq=False)
class ModelBundle:
    """A trained classifier plus the cutoff table computed at training time.

    Bundles for smoothed probability maps carry cutoffs only, so
    ``classifier`` may be None.

    Args:
        model_type: Family the bundle belongs to
        cutoffs: Table of candidate thresholds; row 1 holds the best one
        classifier: Estimator wrapped in its family's probability interface
    """
    model_type: ModelType
    cutoffs: pd.DataFrame
    classifier: Optional[ProbabilityModel] = None

    @classmethod
    def from_dict(cls, data: Dict, model_type) -> 'ModelBundle':
        """Build a bundle from a dict with 'model' and 'cutoffs' entries"""
        model_type = ModelType.parse(model_type)
        if not isinstance(data, dict):
            raise InvalidModelError(f"Model bundle must be a dict, got {type(data).__name__}")
        if data.get("cutoffs") is None:
            raise InvalidModelError(f"Model bundle for '{model_type.value}' has no cutoff table")
        estimator = data.get("model")
        classifier = None if estimator is None else make_probability_model(model_type, estimator)
        return cls(model_type=model_type,
                   cutoffs=_as_cutoff_table(data["cutoffs"]),
                   classifier=classifier)

    @property
    def cutoff(self) -> float:
        """Decision threshold stored in the first row of the cutoff table"""
        if "cutoff" not in self.cutoffs.columns:
            raise InvalidModelError("Cutoff table has no 'cutoff' column")
        if len(self.cutoffs) == 0:
            raise InvalidModelError("Cutoff table is empty")
        value = self.cutoffs["cutoff"].iloc[0]
        try:
            cutoff = float(value)
        except (TypeError, ValueError):
            raise InvalidModelError(f"Cutoff {value!r} is not a number") from None
        if not math.isfinite(cutoff):
            raise InvalidModelError(f"Cutoff {value!r} is not finite")
        return cutoff


@dataclass(frozen=True)
class ResolvedModel:
    """Classifier and the two cutoffs used for one prediction run"""
    classifier: ProbabilityModel
    cutoff: float
    smoothed_cutoff: float


@dataclass(frozen=True)
class PredictionImages:
    """Binary and probability volumes in one coordinate space"""
    prediction_image: sitk.Image
    smoothed_prediction_image: sitk.Image
    probability_image: sitk.Image
    smoothed_probability_image: sitk.Image
    cutoff: float
    smoothed_cutoff: float

    IMAGE_FIELDS = (
        'prediction_image',
        'smoothed_prediction_image',
        'probability_image',
        'smoothed_probability_image',
    )
    BINARY_FIELDS = ('prediction_image', 'smoothed_prediction_image')

    def images(self) -> Dict[str, sitk.Image]:
        return {name: getattr(self, name) for name in self.IMAGE_FIELDS}

    def with_images(self, **images) -> 'PredictionImages':
        return replace(self, **images)

    def voxel_counts(self) -> Dict[str, int]:
        """Number of foreground voxels in each binary volume"""
        return {
            name: count_foreground(getattr(self, name))
            for name in self.BINARY_FIELDS
        }


@dataclass(frozen=True)
class PredictionResult:
    """Registered-space predictions and, when requested, native-space ones"""
    registered_prediction: PredictionImages
    native_prediction: Optional[PredictionImages] = field(default=None)

    def to_dict(self) -> Dict[str, Optional[PredictionImages]]:
        return {
            'registered_prediction': self.registered_prediction,
            'native_prediction': self.native_prediction,
        }
