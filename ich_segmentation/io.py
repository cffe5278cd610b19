import os
import json
import logging
from typing import Dict

import pandas as pd
import SimpleITK as sitk

from .data_structures import PredictionResult

logger = logging.getLogger(__name__)


def load_feature_table(path: str) -> pd.DataFrame:
    """Read a feature table saved as CSV"""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Feature table not found: {path}")
    df = pd.read_csv(path)
    logger.info(f"Loaded {len(df)} feature rows with {df.shape[1]} columns from {path}")
    return df


def save_prediction_results(result: PredictionResult, output_dir: str,
                            prefix: str = "ich", extension: str = ".nii.gz") -> Dict[str, str]:
    """Save every prediction image and a JSON summary of the cutoffs

    Args:
        result: Output of ich_predict
        output_dir: Directory for output files
        prefix: Prefix for output file names
        extension: Image file extension (default: .nii.gz)

    Returns:
        Mapping of '<space>_<image name>' to the written file
    """
    os.makedirs(output_dir, exist_ok=True)
    written = {}
    summary = {}
    for space, images in result.to_dict().items():
        if images is None:
            continue
        space_name = space.replace("_prediction", "")
        for name, image in images.images().items():
            output_file = os.path.join(output_dir, f"{prefix}_{space_name}_{name}{extension}")
            sitk.WriteImage(image, output_file)
            written[f"{space_name}_{name}"] = output_file
        summary[space] = {
            'cutoff': images.cutoff,
            'smoothed_cutoff': images.smoothed_cutoff,
            'voxel_counts': images.voxel_counts(),
        }

    summary_file = os.path.join(output_dir, f"{prefix}_prediction_summary.json")
    with open(summary_file, 'w') as f:
        json.dump(summary, f, indent=2)
    logger.info(f"Results saved to: {output_dir}")
    return written
