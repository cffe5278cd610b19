import numpy as np
from scipy.ndimage import uniform_filter

# Values smaller than this after smoothing are numerical noise
SMOOTHING_TOLERANCE = np.finfo(float).eps ** 0.5


def mean_image(volume, nvoxels=1):
    """Local mean over a cube of side 2 * nvoxels + 1

    The border is zero padded, so with nvoxels=1 a single voxel of 1.0
    spreads 1/27 onto itself and each of its 26 neighbours.

    Args:
        volume: Probability volume
        nvoxels: Neighbourhood radius in voxels (default: 1)

    Returns:
        smoothed: Smoothed volume with noise and NaN set to 0
    """
    volume = np.asarray(volume, dtype=float)
    if nvoxels <= 0:
        smoothed = volume.copy()
    else:
        size = 2 * int(nvoxels) + 1
        # Array layout is [t, z, y, x]; only the spatial axes are averaged
        sizes = [1] * max(volume.ndim - 3, 0) + [size] * min(volume.ndim, 3)
        smoothed = uniform_filter(volume, size=sizes, mode='constant', cval=0.0)

    smoothed[np.abs(smoothed) < SMOOTHING_TOLERANCE] = 0
    smoothed[np.isnan(smoothed)] = 0
    return smoothed


def threshold_image(volume, cutoff):
    """Binary mask of voxels strictly above the cutoff"""
    return (np.asarray(volume) > cutoff).astype(np.uint8)
