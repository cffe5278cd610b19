import os
import logging
from typing import Callable, List, Optional, Sequence, Union

import SimpleITK as sitk
from tqdm import tqdm

from .data_structures import PredictionImages
from .errors import ConfigurationError, MissingTransformError
from .reconstruction import image_from_array, join_series, split_series
from .thresholding import threshold_image

logger = logging.getLogger(__name__)

NATIVE_THRESHOLD = 0.5

INTERPOLATORS = {
    'linear': sitk.sitkLinear,
    'nearestNeighbor': sitk.sitkNearestNeighbor,
    'bSpline': sitk.sitkBSpline,
    'gaussian': sitk.sitkGaussian,
    'genericLabel': sitk.sitkLabelGaussian,
    'lanczosWindowedSinc': sitk.sitkLanczosWindowedSinc,
}

TransformLike = Union[sitk.Transform, str, os.PathLike]


def resolve_interpolator(name: str) -> int:
    """Map an interpolator name to its SimpleITK constant"""
    lookup = {key.lower(): value for key, value in INTERPOLATORS.items()}
    try:
        return lookup[str(name).lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown interpolator '{name}' (expected one of: {', '.join(INTERPOLATORS)})"
        ) from None


def load_transform(transform: TransformLike) -> sitk.Transform:
    if isinstance(transform, sitk.Transform):
        return transform
    return sitk.ReadTransform(os.fspath(transform))


def inverse_transform(transformlist: Sequence[TransformLike],
                      invert: Optional[Sequence[bool]] = None) -> sitk.Transform:
    """Compose the inverse of an ordered transform chain.

    The chain is applied last-to-first, so its inverse applies the
    (inverted) transforms in the opposite order.

    Args:
        transformlist: Transforms or transform files, in application order
        invert: Which transforms to invert (default: all)

    Returns:
        Composite transform mapping native points into registered space
    """
    if invert is None:
        invert = [True] * len(transformlist)
    if len(invert) != len(transformlist):
        raise ConfigurationError(
            f"Got {len(invert)} invert flags for {len(transformlist)} transforms"
        )
    steps: List[sitk.Transform] = []
    for transform, flag in zip(reversed(list(transformlist)), reversed(list(invert))):
        transform = load_transform(transform)
        steps.append(transform.GetInverse() if flag else transform)
    return sitk.CompositeTransform(steps)


def resample_to_native(moving: sitk.Image, native_image: sitk.Image,
                       transform: sitk.Transform, interpolator: int) -> sitk.Image:
    """Resample a registered-space image onto the native image grid

    4D images are resampled one 3D time point at a time onto the spatial
    grid of the native image.
    """
    grid = split_series(native_image)[0]
    volumes = [
        sitk.Resample(sitk.Cast(volume, sitk.sitkFloat64), grid, transform, interpolator, 0.0, sitk.sitkFloat64)
        for volume in split_series(moving)
    ]
    return join_series(volumes, moving)


class NativeSpaceProjector:
    """
    Projects registered-space prediction images back into native space.

    All preconditions are checked on construction so that a bad
    configuration fails before any expensive work starts.
    """

    def __init__(self,
                 native_image: Optional[sitk.Image],
                 transformlist: Optional[Sequence[TransformLike]],
                 interpolator: Optional[str],
                 native_thresh: float = NATIVE_THRESHOLD,
                 invert: Optional[Sequence[bool]] = None,
                 resample: Optional[Callable] = None,
                 progress: bool = False):
        """
        Args:
            native_image: Reference image defining the native grid
            transformlist: Transforms from registration; these are inverted
            interpolator: Interpolator name, e.g. 'linear'
            native_thresh: Threshold re-binarising interpolated masks
            invert: Which transforms to invert (default: all)
            resample: Callable (moving, native_image, transform, interpolator) -> image
            progress: Show a progress bar over the projected images
        """
        if not transformlist:
            raise MissingTransformError("Native-space output requires a transform list")
        if interpolator is None:
            raise MissingTransformError("Native-space output requires an interpolator")
        if native_image is None:
            raise MissingTransformError("Native-space output requires a native reference image")

        self.native_image = native_image
        self.transformlist = list(transformlist)
        self.interpolator = resolve_interpolator(interpolator)
        self.native_thresh = native_thresh
        self.invert = invert
        self.resample = resample or resample_to_native
        self.progress = progress

    def project(self, images: PredictionImages) -> PredictionImages:
        """Resample every image and re-threshold the binary ones"""
        transform = inverse_transform(self.transformlist, self.invert)

        projected = {}
        pbar = tqdm(images.images().items(), desc="Projecting to native space",
                    unit="images", disable=not self.progress)
        for name, image in pbar:
            native = self.resample(image, self.native_image, transform, self.interpolator)
            if name in PredictionImages.BINARY_FIELDS:
                # Interpolated masks are continuous
                array = sitk.GetArrayFromImage(native)
                native = image_from_array(threshold_image(array, self.native_thresh), native)
            projected[name] = native

        logger.info(f"Projected {len(projected)} images to native space (threshold {self.native_thresh})")
        return images.with_images(**projected)
