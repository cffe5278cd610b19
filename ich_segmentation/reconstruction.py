import numpy as np
import SimpleITK as sitk
import logging

logger = logging.getLogger(__name__)


def image_from_array(array: np.ndarray, reference: sitk.Image) -> sitk.Image:
    """Wrap an array in an image carrying the reference geometry"""
    image = sitk.GetImageFromArray(array, isVector=False)
    image.CopyInformation(reference)
    return image


def split_series(image: sitk.Image):
    """3D volumes of a 4D image, one per time point; a 3D image is returned as is"""
    if image.GetDimension() < 4:
        return [image]
    size = list(image.GetSize())
    n_points = size[3]
    size[3] = 0
    return [sitk.Extract(image, size, [0, 0, 0, t]) for t in range(n_points)]


def join_series(volumes, reference: sitk.Image) -> sitk.Image:
    """Stack 3D volumes along time, taking the time origin and spacing from reference"""
    if len(volumes) == 1 and reference.GetDimension() < 4:
        return volumes[0]
    joiner = sitk.JoinSeriesImageFilter()
    joiner.SetOrigin(reference.GetOrigin()[3])
    joiner.SetSpacing(reference.GetSpacing()[3])
    return joiner.Execute(volumes)


def voxel_values(values, reference: sitk.Image) -> np.ndarray:
    """Reshape one value per voxel into the array layout of the reference.

    Voxels are enumerated in C order over the SimpleITK array view
    ([z, y, x]), so x varies fastest.
    """
    values = np.asarray(values)
    shape = sitk.GetArrayViewFromImage(reference).shape
    if values.size != int(np.prod(shape)):
        raise ValueError(
            f"Got {values.size} values for an image with {int(np.prod(shape))} voxels"
        )
    return values.reshape(shape)


def remake_volume(values: np.ndarray, reference: sitk.Image, candidates: np.ndarray) -> np.ndarray:
    """Scatter candidate values into a zero volume of the reference geometry

    Args:
        values: One value per candidate voxel, in enumeration order
        reference: Image whose geometry the volume takes
        candidates: Boolean flag per voxel

    Returns:
        Array in [z, y, x] layout, zero outside the candidates
    """
    candidates = voxel_values(candidates, reference).astype(bool)
    values = np.asarray(values, dtype=float)
    if values.size != int(candidates.sum()):
        raise ValueError(f"Got {values.size} values for {int(candidates.sum())} candidate voxels")
    volume = np.zeros(candidates.shape, dtype=float)
    volume[candidates] = values
    return volume


def mask_volume(volume: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """Zero every voxel outside the brain mask"""
    mask = np.asarray(mask).astype(bool).reshape(volume.shape)
    outside = int(np.count_nonzero(volume[~mask]))
    if outside:
        logger.debug(f"Masking removed {outside} non-zero voxels outside the brain")
    return np.where(mask, volume, 0.0)
