import numpy as np
from enum import Enum
from scipy.special import expit
import logging

from .errors import ConfigurationError, InvalidModelError

logger = logging.getLogger(__name__)


class ModelType(Enum):
    """Pretrained model families shipped with the pipeline"""
    RF = "rf"
    LOGISTIC = "logistic"
    BIG_RF = "big_rf"

    @classmethod
    def parse(cls, identifier) -> 'ModelType':
        """Look up a model type from its identifier string"""
        if isinstance(identifier, cls):
            return identifier
        try:
            return cls(identifier)
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ConfigurationError(
                f"Unknown model identifier '{identifier}' (expected one of: {valid})"
            ) from None


class ProbabilityModel:
    """
    Wraps a trained estimator behind a single capability: the probability
    of the hemorrhage class (label 1) for each feature row.
    """

    def __init__(self, estimator):
        self.estimator = estimator

    @property
    def feature_names(self):
        """Columns the estimator was fitted on, if it recorded them"""
        names = getattr(self.estimator, "feature_names_in_", None)
        return None if names is None else list(names)

    def predict_probability(self, features) -> np.ndarray:
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}({type(self.estimator).__name__})"


class RandomForestModel(ProbabilityModel):
    """Ensemble classifier; uses the positive-class column of predict_proba"""

    def _positive_index(self) -> int:
        classes = list(getattr(self.estimator, "classes_", [0, 1]))
        for i, label in enumerate(classes):
            if str(label) in ("1", "1.0", "True"):
                return i
        raise InvalidModelError(f"Classifier has no positive class (classes: {classes})")

    def predict_probability(self, features) -> np.ndarray:
        proba = np.asarray(self.estimator.predict_proba(features), dtype=float)
        return proba[:, self._positive_index()]


class LogisticModel(ProbabilityModel):
    """Linear/logistic classifier; uses the response scale of the linear predictor"""

    def predict_probability(self, features) -> np.ndarray:
        linear = np.asarray(self.estimator.decision_function(features), dtype=float)
        return expit(linear.ravel())


MODEL_FAMILIES = {
    ModelType.RF: RandomForestModel,
    ModelType.BIG_RF: RandomForestModel,
    ModelType.LOGISTIC: LogisticModel,
}


def make_probability_model(model_type: ModelType, estimator) -> ProbabilityModel:
    """Wrap an estimator in the probability interface of its family"""
    if isinstance(estimator, ProbabilityModel):
        return estimator
    family = MODEL_FAMILIES[model_type]
    logger.debug(f"Wrapping {type(estimator).__name__} as {family.__name__}")
    return family(estimator)
