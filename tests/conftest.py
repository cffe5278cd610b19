"""
Shared fixtures for the ICH prediction tests.

Images are tiny in-memory SimpleITK volumes; classifiers are stubs that
return fixed probabilities so expected masks can be worked out by hand.
"""

import numpy as np
import pandas as pd
import pytest
import SimpleITK as sitk
from scipy.special import logit

from ich_segmentation.classifiers import ModelType
from ich_segmentation.data_structures import ModelBundle
from ich_segmentation.models import ModelRegistry


class StubForest:
    """predict_proba returns fixed positive-class probabilities"""

    classes_ = np.array([0, 1])

    def __init__(self, probabilities):
        self.probabilities = np.asarray(probabilities, dtype=float)
        self.calls = []

    def predict_proba(self, X):
        self.calls.append(X)
        p = self.probabilities[:len(X)]
        return np.column_stack([1 - p, p])


class StubLogistic:
    """decision_function returns the logit of fixed probabilities"""

    def __init__(self, probabilities):
        self.probabilities = np.asarray(probabilities, dtype=float)
        self.calls = []

    def decision_function(self, X):
        self.calls.append(X)
        return logit(self.probabilities[:len(X)])


def make_image(size=(10, 1, 1)):
    """Float image of the given (x, y, z) size with unit spacing"""
    image = sitk.Image(list(size), sitk.sitkFloat32)
    image.SetSpacing([1.0] * len(size))
    return image


@pytest.fixture
def line_image():
    """10 voxels along x"""
    return make_image((10, 1, 1))


@pytest.fixture
def feature_table():
    """10 voxels, candidates at rows 2, 5 and 8, all inside the brain"""
    multiplier = np.zeros(10, dtype=bool)
    multiplier[[2, 5, 8]] = True
    return pd.DataFrame({
        'value': np.linspace(30, 90, 10),
        'zscore2': np.ones(10),
        'multiplier': multiplier,
        'mask': np.ones(10, dtype=bool),
    })


@pytest.fixture
def candidate_probabilities():
    return [0.2, 0.6, 0.9]


@pytest.fixture
def stub_forest(candidate_probabilities):
    return StubForest(candidate_probabilities)


@pytest.fixture
def registry(stub_forest):
    """Registry holding an rf bundle and its smoothed cutoffs"""
    return ModelRegistry({
        'rf': ModelBundle.from_dict(
            {'model': stub_forest,
             'cutoffs': pd.DataFrame({'cutoff': [0.5, 0.3], 'dice': [0.8, 0.7]})},
            ModelType.RF),
        'smoothed_rf': ModelBundle.from_dict(
            {'cutoffs': pd.DataFrame({'cutoff': [0.1, 0.2], 'dice': [0.75, 0.7]})},
            ModelType.RF),
    })
