import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Callable, List, Optional
import logging
import warnings

from .errors import ConfigurationError, DataQualityWarning

logger = logging.getLogger(__name__)

OUTCOME_COLUMN = 'Y'
CANDIDATE_COLUMN = 'multiplier'
MASK_COLUMN = 'mask'
RESERVED_COLUMNS = (OUTCOME_COLUMN, CANDIDATE_COLUMN, MASK_COLUMN)
FLAG_COLUMNS = (CANDIDATE_COLUMN, MASK_COLUMN)


@dataclass
class CandidateRule:
    """Intensity and shape limits a voxel must satisfy to be an ICH candidate

    Parameters:
        min_value: float = 40 (HU)
            Lower CT intensity bound. Fresh blood sits roughly at 40-80 HU.
        max_value: float = 80 (HU)
            Upper CT intensity bound.
        max_dist_centroid: float = 75 (mm)
            Voxels further than this from the brain centroid are excluded.
        min_pct_thresh: float = 0.1
            Minimum fraction of the neighbourhood inside the intensity window.
        min_zscore: float = 0
            Both axial and coronal z-scores must exceed this.
    """
    min_value: float = 40.0
    max_value: float = 80.0
    max_dist_centroid: float = 75.0
    min_pct_thresh: float = 0.1
    min_zscore: float = 0.0

    REQUIRED_COLUMNS = ('value', 'dist_centroid', 'pct_thresh', 'zscore2', 'zscore3', MASK_COLUMN)

    def __call__(self, df: pd.DataFrame) -> np.ndarray:
        missing = [c for c in self.REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ConfigurationError(
                f"Cannot derive candidate voxels, missing columns: {', '.join(missing)}"
            )
        # Comparisons against NaN are False, so incomplete rows are never candidates
        candidates = (
            (df['value'] >= self.min_value) &
            (df['value'] <= self.max_value) &
            (df['dist_centroid'] <= self.max_dist_centroid) &
            (df['pct_thresh'] >= self.min_pct_thresh) &
            (df['zscore2'] > self.min_zscore) &
            (df['zscore3'] > self.min_zscore) &
            df[MASK_COLUMN].fillna(0).astype(bool)
        )
        return candidates.to_numpy(dtype=bool)


def candidate_voxels(df: pd.DataFrame, rule: Optional[CandidateRule] = None) -> np.ndarray:
    """Flag the rows that are plausible hemorrhage voxels"""
    rule = rule or CandidateRule()
    candidates = rule(df)
    logger.info(f"Candidate voxels: {int(candidates.sum())} of {len(df)}")
    return candidates


def _is_categorical(series: pd.Series) -> bool:
    return not (pd.api.types.is_numeric_dtype(series) or pd.api.types.is_bool_dtype(series))


def sanitize_features(df: pd.DataFrame,
                      candidate_rule: Optional[Callable[[pd.DataFrame], np.ndarray]] = None) -> pd.DataFrame:
    """Prepare a feature table for prediction.

    Adds the candidate column when it is missing, drops the outcome column,
    and replaces non-finite numeric entries with 0. Rows are never removed
    because each one maps to a voxel of the source volume.

    Args:
        df: Feature table, one row per voxel
        candidate_rule: Callable flagging candidate rows (default: CandidateRule())

    Returns:
        A corrected copy with the same row count and order
    """
    df = df.copy()
    if CANDIDATE_COLUMN not in df.columns:
        rule = candidate_rule if candidate_rule is not None else CandidateRule()
        df[CANDIDATE_COLUMN] = candidate_voxels(df, rule)
    if OUTCOME_COLUMN in df.columns:
        df = df.drop(columns=OUTCOME_COLUMN)

    bad_rows = np.zeros(len(df), dtype=bool)
    for column in df.columns:
        values = df[column]
        # Flags are boolean whatever dtype they arrive in
        is_flag = column in FLAG_COLUMNS and _is_categorical(values)
        if _is_categorical(values) and not is_flag:
            continue
        if is_flag or pd.api.types.is_bool_dtype(values):
            bad = values.isna().to_numpy(dtype=bool)
            fill = False
        else:
            bad = ~np.isfinite(values.to_numpy(dtype=float, na_value=np.nan))
            fill = 0
        if bad.any():
            df.loc[bad, column] = fill
            bad_rows |= bad

    if bad_rows.any():
        msg = f"NAs or non-finite values in {int(bad_rows.sum())} feature rows, replaced with 0"
        logger.warning(msg)
        warnings.warn(msg, DataQualityWarning, stacklevel=2)

    df[CANDIDATE_COLUMN] = df[CANDIDATE_COLUMN].astype(bool)
    if MASK_COLUMN in df.columns:
        df[MASK_COLUMN] = df[MASK_COLUMN].astype(bool)
    return df


def predictor_columns(df: pd.DataFrame, feature_names: Optional[List[str]] = None) -> List[str]:
    """Columns passed to the classifier"""
    if feature_names is not None:
        missing = [c for c in feature_names if c not in df.columns]
        if missing:
            raise ConfigurationError(f"Feature table is missing model predictors: {', '.join(missing)}")
        return list(feature_names)
    return [c for c in df.columns if c not in RESERVED_COLUMNS]
