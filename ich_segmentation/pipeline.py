import logging
from collections.abc import Mapping
from typing import Callable, Optional, Sequence

import pandas as pd
import SimpleITK as sitk
from tqdm import tqdm

from .components import MIN_CLUSTER_SIZE, label_clusters
from .data_structures import ModelBundle, PredictionImages, PredictionResult
from .errors import ConfigurationError
from .features import CANDIDATE_COLUMN, MASK_COLUMN, sanitize_features
from .inference import predict_candidates
from .models import resolve_model
from .native import NATIVE_THRESHOLD, NativeSpaceProjector
from .parameters import PredictionParameters
from .reconstruction import image_from_array, mask_volume, remake_volume, voxel_values
from .thresholding import mean_image, threshold_image

logger = logging.getLogger(__name__)

N_STAGES = 6


def ich_predict(df: pd.DataFrame,
                image: sitk.Image,
                registry: Optional[Mapping] = None,
                model: str = 'rf',
                verbose: bool = True,
                native: bool = True,
                native_image: Optional[sitk.Image] = None,
                transformlist: Optional[Sequence] = None,
                interpolator: Optional[str] = None,
                native_thresh: float = NATIVE_THRESHOLD,
                model_bundle: Optional[ModelBundle] = None,
                smoothed_cutoffs=None,
                candidate_rule: Optional[Callable] = None,
                smoothing_voxels: int = 1,
                min_cluster_size: int = MIN_CLUSTER_SIZE,
                invert: Optional[Sequence[bool]] = None,
                resample: Optional[Callable] = None,
                progress: bool = False) -> PredictionResult:
    """Predict ICH voxels from a table of predictors.

    Args:
        df: Feature table, one row per voxel of ``image``. A missing
            multiplier column is derived with the candidate rule.
        image: Registered-space image the features were computed on
        registry: Mapping of model identifier to ModelBundle
        model: Model family, 'rf', 'logistic' or 'big_rf'
        verbose: Log each stage
        native: Also return native-space predictions
        native_image: Image defining the native grid
        transformlist: Registration transforms; these will be inverted
        interpolator: Interpolator for the transformation back to native space
        native_thresh: Threshold for re-binarising masks after interpolation
        model_bundle: Bundle used instead of the registry entry
        smoothed_cutoffs: Cutoff table used instead of the registry's
            ``smoothed_<model>`` entry
        candidate_rule: Callable flagging candidate rows
        smoothing_voxels: Radius of the mean filter
        min_cluster_size: Smallest connected component kept, in voxels
        invert: Which transforms to invert (default: all)
        resample: Replacement for the native-space resampling call
        progress: Show a tqdm progress bar over the stages

    Returns:
        PredictionResult with registered and (optionally) native predictions
    """
    pbar = tqdm(total=N_STAGES + int(native), desc="ICH prediction", unit="stages", disable=not progress)

    def stage(msg):
        if verbose:
            logger.info(msg)
        pbar.set_postfix_str(msg.lstrip("# "))
        pbar.update(1)

    try:
        # Everything that can be misconfigured is checked before inference
        resolved = resolve_model(model, registry, model_bundle=model_bundle,
                                 smoothed_cutoffs=smoothed_cutoffs)
        projector = None
        if native:
            projector = NativeSpaceProjector(native_image, transformlist, interpolator,
                                             native_thresh=native_thresh, invert=invert,
                                             resample=resample, progress=progress)

        df = sanitize_features(df, candidate_rule=candidate_rule)
        if MASK_COLUMN not in df.columns:
            raise ConfigurationError(f"Feature table has no '{MASK_COLUMN}' column")
        candidates = voxel_values(df[CANDIDATE_COLUMN].to_numpy(), image)
        brain_mask = voxel_values(df[MASK_COLUMN].to_numpy(), image)

        stage("# Making Prediction")
        probabilities = predict_candidates(resolved.classifier, df)

        stage("# Making Prediction Image")
        pimg = mask_volume(remake_volume(probabilities, image, candidates), brain_mask)

        stage("# Smoothing Image")
        sm_pimg = mean_image(pimg, nvoxels=smoothing_voxels)

        stage("# Thresholding Image")
        pred = threshold_image(pimg, resolved.cutoff)
        sm_pred = threshold_image(sm_pimg, resolved.smoothed_cutoff)

        stage("# Connected Components")
        registered = PredictionImages(
            prediction_image=label_clusters(image_from_array(pred, image), min_cluster_size),
            smoothed_prediction_image=label_clusters(image_from_array(sm_pred, image), min_cluster_size),
            probability_image=image_from_array(pimg, image),
            smoothed_probability_image=image_from_array(sm_pimg, image),
            cutoff=resolved.cutoff,
            smoothed_cutoff=resolved.smoothed_cutoff,
        )
        if verbose:
            logger.info(f"Registered-space voxel counts: {registered.voxel_counts()}")

        native_prediction = None
        if projector is not None:
            stage("# Projecting back to Native Space")
            native_prediction = projector.project(registered)

        stage("# Prediction complete")
        return PredictionResult(registered_prediction=registered,
                                native_prediction=native_prediction)
    finally:
        pbar.close()


def predict_with_parameters(df: pd.DataFrame, image: sitk.Image, registry: Mapping,
                            params: PredictionParameters, **inputs) -> PredictionResult:
    """Run ich_predict with settings taken from a PredictionParameters"""
    return ich_predict(df, image, registry,
                       model=params.model,
                       verbose=params.verbose,
                       native=params.native,
                       interpolator=inputs.pop('interpolator', params.interpolator),
                       native_thresh=params.native_thresh,
                       smoothing_voxels=params.smoothing_voxels,
                       min_cluster_size=params.min_cluster_size,
                       progress=params.progress,
                       **inputs)
