import numpy as np
import SimpleITK as sitk
import logging

from .reconstruction import join_series, split_series

logger = logging.getLogger(__name__)

MIN_CLUSTER_SIZE = 100


def _label_volume(binary_volume: sitk.Image, min_cluster_size: int, fully_connected: bool) -> sitk.Image:
    binary = sitk.Cast(binary_volume > 0, sitk.sitkUInt8)
    labels = sitk.ConnectedComponent(binary, fully_connected)
    relabel = sitk.RelabelComponentImageFilter()
    relabel.SetMinimumObjectSize(int(min_cluster_size))
    labels = relabel.Execute(labels)

    n_before = relabel.GetOriginalNumberOfObjects()
    n_after = relabel.GetNumberOfObjects()
    logger.info(f"Connected components: kept {n_after} of {n_before} (min size {min_cluster_size} voxels)")
    return sitk.Cast(labels > 0, sitk.sitkUInt8)


def label_clusters(binary_image: sitk.Image, min_cluster_size: int = MIN_CLUSTER_SIZE,
                   fully_connected: bool = False) -> sitk.Image:
    """Keep the connected foreground regions of at least min_cluster_size voxels

    4D images are labelled one 3D time point at a time.

    Args:
        binary_image: Binary mask
        min_cluster_size: Smallest component kept, in voxels (default: 100)
        fully_connected: Use 26-connectivity instead of face connectivity

    Returns:
        Binary uint8 image with the small components removed
    """
    volumes = [_label_volume(volume, min_cluster_size, fully_connected)
               for volume in split_series(binary_image)]
    cleaned = join_series(volumes, binary_image)
    cleaned.CopyInformation(binary_image)
    return cleaned


def count_foreground(image: sitk.Image) -> int:
    return int(np.count_nonzero(sitk.GetArrayViewFromImage(image)))
