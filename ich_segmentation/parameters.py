import json
import logging
from dataclasses import dataclass, fields, asdict

from .components import MIN_CLUSTER_SIZE
from .native import NATIVE_THRESHOLD

logger = logging.getLogger(__name__)


@dataclass
class PredictionParameters:
    """Parameters for ICH prediction post-processing

    Parameters:
        model: str = 'rf'
            Pretrained model family: 'rf', 'big_rf' or 'logistic'.

        native: bool = True
            Project predictions back into native acquisition space.
            Requires a native image, transform list and interpolator.

        native_thresh: float = 0.5
            Threshold re-binarising prediction masks after interpolation.
            - Lower values: masks grow at the boundary
            - Higher values: masks shrink at the boundary

        interpolator: str = 'linear'
            Interpolator for native-space resampling.

        smoothing_voxels: int = 1
            Radius of the box mean filter applied to the probability map.
            0 disables smoothing.

        min_cluster_size: int = 100 (voxels)
            Connected components smaller than this are removed from masks.

        verbose: bool = True
            Log each pipeline stage.

        progress: bool = False
            Show tqdm progress bars.
    """
    model: str = 'rf'
    native: bool = True
    native_thresh: float = NATIVE_THRESHOLD
    interpolator: str = 'linear'
    smoothing_voxels: int = 1
    min_cluster_size: int = MIN_CLUSTER_SIZE
    verbose: bool = True
    progress: bool = False

    @classmethod
    def get_parameter_sets(cls):
        """Named parameter sets"""
        return {
            'default': cls(),
            'logistic': cls(model='logistic'),
            'big_rf': cls(model='big_rf'),
            'registered_only': cls(native=False),
        }

    @classmethod
    def from_dict(cls, params_dict, base=None):
        """Create parameters from a dictionary of overrides"""
        params = cls(**asdict(base)) if base is not None else cls()
        known = {f.name for f in fields(cls)}
        for key, value in params_dict.items():
            if key in known:
                setattr(params, key, value)
            else:
                logger.warning(f"Ignoring unknown parameter '{key}'")
        return params

    @classmethod
    def from_json(cls, path, base=None):
        """Load parameter overrides from a JSON file"""
        with open(path) as f:
            return cls.from_dict(json.load(f), base=base)
