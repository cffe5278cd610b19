import os
import argparse
import logging
import SimpleITK as sitk

from ich_segmentation.io import load_feature_table, save_prediction_results
from ich_segmentation.models import ModelRegistry
from ich_segmentation.parameters import PredictionParameters
from ich_segmentation.pipeline import predict_with_parameters

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='ICH prediction from a table of voxel predictors')
    parser.add_argument('--features', type=str, required=True,
                      help='CSV feature table, one row per voxel of --image')
    parser.add_argument('--image', type=str, required=True,
                      help='Registered-space image the features were computed on')
    parser.add_argument('--model-dir', type=str, required=True,
                      help='Directory of <identifier>.joblib model bundles')
    parser.add_argument('--output-dir', type=str, default='output_ich',
                      help='Directory for prediction images')
    parser.add_argument('--prefix', type=str, default='ich',
                      help='Prefix for output files')

    # Parameter selection options
    param_group = parser.add_argument_group('Parameter Selection')
    param_group.add_argument('--parameter-set', type=str, default='default',
                          choices=list(PredictionParameters.get_parameter_sets()),
                          help='Predefined parameter set')
    param_group.add_argument('--config', type=str,
                          help='JSON file of parameter overrides')

    # Native space
    native_group = parser.add_argument_group('Native Space')
    native_group.add_argument('--native-image', type=str,
                           help='Image in native acquisition space')
    native_group.add_argument('--transform', type=str, action='append', dest='transforms',
                           help='Registration transform file (repeatable, in application order)')
    native_group.add_argument('--no-native', action='store_true',
                           help='Only produce registered-space predictions')

    # Individual parameter overrides
    override_group = parser.add_argument_group('Parameter Overrides')
    override_group.add_argument('--model', type=str, choices=['rf', 'logistic', 'big_rf'],
                             help='Model family (default: rf)')
    override_group.add_argument('--interpolator', type=str,
                             help='Native-space interpolator (default: linear)')
    override_group.add_argument('--native-thresh', type=float,
                             help='Re-threshold for native-space masks (default: 0.5)')
    override_group.add_argument('--min-cluster-size', type=int,
                             help='Smallest connected component kept (default: 100)')
    override_group.add_argument('--progress', action='store_true',
                             help='Show progress bars')
    override_group.add_argument('--quiet', action='store_true',
                             help='Do not log each pipeline stage')

    args = parser.parse_args(argv)

    params = PredictionParameters.get_parameter_sets()[args.parameter_set]
    if args.config:
        params = PredictionParameters.from_json(args.config, base=params)

    # Collect custom parameters if any are specified
    custom_params = {}
    if args.model is not None:
        custom_params['model'] = args.model
    if args.interpolator is not None:
        custom_params['interpolator'] = args.interpolator
    if args.native_thresh is not None:
        custom_params['native_thresh'] = args.native_thresh
    if args.min_cluster_size is not None:
        custom_params['min_cluster_size'] = args.min_cluster_size
    if args.no_native:
        custom_params['native'] = False
    if args.progress:
        custom_params['progress'] = True
    if args.quiet:
        custom_params['verbose'] = False

    args.params = PredictionParameters.from_dict(custom_params, base=params)
    return args


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    os.makedirs(args.output_dir, exist_ok=True)
    file_handler = logging.FileHandler(os.path.join(args.output_dir, 'ich_prediction.log'))
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(file_handler)

    try:
        logger.info(f"Parameters: {args.params}")
        registry = ModelRegistry.from_directory(args.model_dir)
        df = load_feature_table(args.features)
        image = sitk.ReadImage(args.image)
        native_image = sitk.ReadImage(args.native_image) if args.native_image else None

        result = predict_with_parameters(
            df, image, registry, args.params,
            native_image=native_image,
            transformlist=args.transforms,
        )
        save_prediction_results(result, args.output_dir, prefix=args.prefix)
    except Exception as e:
        logger.error(f"Error during ICH prediction: {str(e)}")
        raise
    finally:
        logging.getLogger().removeHandler(file_handler)
        file_handler.close()


if __name__ == "__main__":
    main()
