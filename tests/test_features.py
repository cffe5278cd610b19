"""
Unit tests for feature sanitization and the candidate-voxel rule
"""

import warnings

import numpy as np
import pandas as pd
import pytest

from ich_segmentation.errors import ConfigurationError, DataQualityWarning
from ich_segmentation.features import (
    CandidateRule,
    candidate_voxels,
    predictor_columns,
    sanitize_features,
)


def rule_table(n=6):
    """Rows that satisfy every default candidate criterion"""
    return pd.DataFrame({
        'value': np.full(n, 60.0),
        'dist_centroid': np.full(n, 20.0),
        'pct_thresh': np.full(n, 0.5),
        'zscore2': np.full(n, 1.0),
        'zscore3': np.full(n, 1.0),
        'mask': np.ones(n, dtype=bool),
    })


class TestCandidateRule:
    """Test the default candidate-voxel rule"""

    def test_all_criteria_met(self):
        """Rows inside every limit are candidates"""
        assert candidate_voxels(rule_table()).all()

    def test_each_criterion_excludes(self):
        """Breaking any one criterion removes the row"""
        df = rule_table(7)
        df.loc[0, 'value'] = 39
        df.loc[1, 'value'] = 81
        df.loc[2, 'dist_centroid'] = 76
        df.loc[3, 'pct_thresh'] = 0.05
        df.loc[4, 'zscore2'] = 0
        df.loc[5, 'zscore3'] = -1
        df.loc[6, 'mask'] = False
        assert not candidate_voxels(df).any()

    def test_intensity_limits_inclusive(self):
        """40 and 80 HU are still candidates"""
        df = rule_table(2)
        df['value'] = [40.0, 80.0]
        assert candidate_voxels(df).all()

    def test_nan_is_not_candidate(self):
        """Missing predictors never make a candidate"""
        df = rule_table(2)
        df.loc[0, 'value'] = np.nan
        assert candidate_voxels(df).tolist() == [False, True]

    def test_custom_limits(self):
        """Rule limits can be overridden"""
        df = rule_table(1)
        assert not candidate_voxels(df, CandidateRule(min_value=70)).any()

    def test_missing_column(self):
        """Missing predictor columns are a configuration error"""
        df = rule_table().drop(columns=['zscore3'])
        with pytest.raises(ConfigurationError, match="zscore3"):
            candidate_voxels(df)


class TestSanitizeFeatures:
    """Test sanitize_features"""

    def test_adds_multiplier(self):
        """A missing multiplier column is derived, same row count"""
        df = rule_table(6)
        df.loc[0, 'value'] = 10
        out = sanitize_features(df)
        assert 'multiplier' in out.columns
        assert len(out) == len(df)
        assert out['multiplier'].dtype == bool
        assert out['multiplier'].tolist() == [False] + [True] * 5

    def test_custom_candidate_rule(self):
        """An injected rule replaces the default"""
        df = pd.DataFrame({'value': [1.0, 2.0, 3.0], 'mask': [True] * 3})
        out = sanitize_features(df, candidate_rule=lambda d: (d['value'] > 1.5).to_numpy())
        assert out['multiplier'].tolist() == [False, True, True]

    def test_existing_multiplier_kept(self):
        """An existing multiplier is not recomputed"""
        df = pd.DataFrame({'value': [60.0, 60.0], 'multiplier': [False, True], 'mask': [True, True]})
        out = sanitize_features(df)
        assert out['multiplier'].tolist() == [False, True]

    def test_drops_outcome(self):
        """Ground truth never reaches prediction"""
        df = pd.DataFrame({'value': [1.0], 'multiplier': [True], 'mask': [True], 'Y': [1]})
        assert 'Y' not in sanitize_features(df).columns

    def test_replaces_non_finite(self):
        """NaN and inf become 0; categorical columns are untouched"""
        df = pd.DataFrame({
            'value': [1.0, np.nan, np.inf, -np.inf],
            'count': [1, 2, 3, 4],
            'site': ['a', None, 'c', 'd'],
            'multiplier': [True] * 4,
            'mask': [True] * 4,
        })
        with pytest.warns(DataQualityWarning):
            out = sanitize_features(df)
        assert out['value'].tolist() == [1.0, 0.0, 0.0, 0.0]
        assert np.isfinite(out['value']).all()
        assert out['count'].tolist() == [1, 2, 3, 4]
        assert out['site'].equals(df['site'])

    def test_rows_preserved(self):
        """No row is dropped and order is kept"""
        df = pd.DataFrame({
            'value': [np.nan, 2.0, 3.0],
            'multiplier': [True, False, True],
            'mask': [True, True, False],
        }, index=[10, 11, 12])
        with pytest.warns(DataQualityWarning):
            out = sanitize_features(df)
        assert list(out.index) == [10, 11, 12]
        assert out['value'].tolist() == [0.0, 2.0, 3.0]

    def test_input_not_mutated(self):
        """The caller's table is left as it was"""
        df = pd.DataFrame({'value': [np.nan], 'multiplier': [True], 'mask': [True]})
        with pytest.warns(DataQualityWarning):
            sanitize_features(df)
        assert np.isnan(df.loc[0, 'value'])

    def test_clean_table_no_warning(self):
        """A complete table does not warn"""
        df = pd.DataFrame({'value': [1.0], 'multiplier': [True], 'mask': [True]})
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            sanitize_features(df)

    def test_nan_multiplier_becomes_false(self):
        """Numeric candidate flags with NaN are zero-filled then cast"""
        df = pd.DataFrame({'value': [1.0, 1.0], 'multiplier': [1.0, np.nan], 'mask': [1, 1]})
        with pytest.warns(DataQualityWarning):
            out = sanitize_features(df)
        assert out['multiplier'].tolist() == [True, False]
        assert out['mask'].dtype == bool


class TestPredictorColumns:
    """Test predictor column selection"""

    def test_reserved_excluded(self):
        df = pd.DataFrame(columns=['value', 'multiplier', 'mask', 'zscore2'])
        assert predictor_columns(df) == ['value', 'zscore2']

    def test_model_feature_order(self):
        """Columns recorded by the model are used in its order"""
        df = pd.DataFrame(columns=['value', 'zscore2', 'mask'])
        assert predictor_columns(df, ['zscore2', 'value']) == ['zscore2', 'value']

    def test_missing_model_feature(self):
        df = pd.DataFrame(columns=['value'])
        with pytest.raises(ConfigurationError, match="zscore2"):
            predictor_columns(df, ['value', 'zscore2'])


class TestFlagColumns:
    """Candidate and mask flags with missing entries"""

    def test_object_flags_with_none(self):
        """None in an object-dtype flag counts as a corrected row"""
        df = pd.DataFrame({
            'value': [1.0, 2.0],
            'multiplier': pd.Series([True, None], dtype=object),
            'mask': pd.Series([None, True], dtype=object),
        })
        with pytest.warns(DataQualityWarning, match="2 feature rows"):
            out = sanitize_features(df)
        assert out['multiplier'].tolist() == [True, False]
        assert out['mask'].tolist() == [False, True]
        assert out['multiplier'].dtype == bool
