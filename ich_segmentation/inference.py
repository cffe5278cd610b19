import numpy as np
import pandas as pd
import logging

from .classifiers import ProbabilityModel
from .features import CANDIDATE_COLUMN, predictor_columns

logger = logging.getLogger(__name__)


def predict_candidates(classifier: ProbabilityModel, df: pd.DataFrame) -> np.ndarray:
    """Predict hemorrhage probability for the candidate rows only

    Args:
        classifier: Model exposing predict_probability
        df: Sanitized feature table with a boolean multiplier column

    Returns:
        Probabilities aligned 1:1 with the candidate rows, in table order
    """
    candidates = df[CANDIDATE_COLUMN].to_numpy(dtype=bool)
    n_candidates = int(candidates.sum())
    if n_candidates == 0:
        logger.warning("No candidate voxels, skipping classifier")
        return np.zeros(0, dtype=float)

    columns = predictor_columns(df, classifier.feature_names)
    logger.info(f"Predicting {n_candidates} candidate voxels with {classifier!r}")
    probabilities = np.asarray(classifier.predict_probability(df.loc[candidates, columns]), dtype=float)
    if probabilities.shape != (n_candidates,):
        raise ValueError(
            f"Classifier returned {probabilities.shape} probabilities for {n_candidates} candidates"
        )
    return probabilities
