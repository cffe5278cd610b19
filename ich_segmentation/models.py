import os
import glob
import logging
from collections.abc import Mapping
from typing import Dict, Iterator, Optional, Union

import joblib
import pandas as pd

from .classifiers import ModelType
from .data_structures import ModelBundle, ResolvedModel
from .errors import ConfigurationError, InvalidModelError

logger = logging.getLogger(__name__)

SMOOTHED_PREFIX = "smoothed_"


def smoothed_name(model_type) -> str:
    """Registry key of the cutoff bundle for smoothed probability maps"""
    return f"{SMOOTHED_PREFIX}{ModelType.parse(model_type).value}"


def _family_of(identifier: str) -> ModelType:
    base = identifier[len(SMOOTHED_PREFIX):] if identifier.startswith(SMOOTHED_PREFIX) else identifier
    return ModelType.parse(base)


class ModelRegistry(Mapping):
    """
    Read-only mapping from model identifier (``rf``, ``smoothed_rf`` ...)
    to ModelBundle. Built once at start-up and passed to the pipeline.
    """

    def __init__(self, bundles: Dict[str, ModelBundle]):
        self._bundles = dict(bundles)

    def __getitem__(self, identifier: str) -> ModelBundle:
        return self._bundles[identifier]

    def __iter__(self) -> Iterator[str]:
        return iter(self._bundles)

    def __len__(self) -> int:
        return len(self._bundles)

    def __repr__(self):
        return f"ModelRegistry({sorted(self._bundles)})"

    @classmethod
    def from_dicts(cls, bundles: Dict[str, Dict]) -> 'ModelRegistry':
        """Build a registry from raw {'model': ..., 'cutoffs': ...} dicts"""
        return cls({
            identifier: data if isinstance(data, ModelBundle) else ModelBundle.from_dict(data, _family_of(identifier))
            for identifier, data in bundles.items()
        })

    @classmethod
    def from_directory(cls, model_dir: str) -> 'ModelRegistry':
        """Load every ``<identifier>.joblib`` bundle in a directory"""
        if not os.path.isdir(model_dir):
            raise FileNotFoundError(f"Model directory not found: {model_dir}")

        bundles = {}
        for path in sorted(glob.glob(os.path.join(model_dir, "*.joblib"))):
            identifier = os.path.splitext(os.path.basename(path))[0]
            try:
                family = _family_of(identifier)
            except ConfigurationError:
                logger.warning(f"Skipping unrecognised model file: {path}")
                continue
            logger.info(f"Loading model bundle '{identifier}' from {path}")
            bundles[identifier] = ModelBundle.from_dict(joblib.load(path), family)

        if not bundles:
            logger.warning(f"No model bundles found in {model_dir}")
        return cls(bundles)


def _lookup(registry: Optional[Mapping], identifier: str) -> ModelBundle:
    if registry is None or identifier not in registry:
        raise ConfigurationError(f"Model '{identifier}' is not available in the model registry")
    return registry[identifier]


def _as_bundle(override, model_type: ModelType) -> ModelBundle:
    if isinstance(override, ModelBundle):
        return override
    if isinstance(override, pd.DataFrame):
        return ModelBundle(model_type=model_type, cutoffs=override)
    return ModelBundle.from_dict(override, model_type)


def resolve_model(model: Union[str, ModelType],
                  registry: Optional[Mapping] = None,
                  model_bundle: Optional[Union[ModelBundle, Dict]] = None,
                  smoothed_cutoffs: Optional[Union[ModelBundle, Dict, pd.DataFrame]] = None) -> ResolvedModel:
    """Select the classifier and cutoffs for a prediction run.

    Explicit overrides take precedence over the registry. The primary bundle
    is looked up as ``<model>`` and the smoothed cutoffs as
    ``smoothed_<model>``.

    Args:
        model: Model identifier ('rf', 'logistic' or 'big_rf')
        registry: Mapping of identifier to ModelBundle
        model_bundle: Bundle used instead of the registry entry
        smoothed_cutoffs: Cutoff table or bundle used instead of the
            registry's smoothed entry

    Returns:
        ResolvedModel with classifier, cutoff and smoothed cutoff
    """
    model_type = ModelType.parse(model)

    if model_bundle is None:
        bundle = _lookup(registry, model_type.value)
    else:
        bundle = _as_bundle(model_bundle, model_type)
    if bundle.classifier is None:
        raise InvalidModelError(f"Model bundle for '{model_type.value}' has no classifier")
    cutoff = bundle.cutoff

    if smoothed_cutoffs is None:
        smoothed = _lookup(registry, smoothed_name(model_type))
    else:
        smoothed = _as_bundle(smoothed_cutoffs, model_type)
    smoothed_cutoff = smoothed.cutoff

    logger.debug(f"Resolved {model_type.value}: cutoff={cutoff}, smoothed_cutoff={smoothed_cutoff}")
    return ResolvedModel(classifier=bundle.classifier,
                         cutoff=cutoff,
                         smoothed_cutoff=smoothed_cutoff)
