"""Parsing input arguments."""
import argparse
import logging
import os
from os.path import join
import json


def parse_arguments(argv=None):
    """Parse input arguments."""
    parser = argparse.ArgumentParser(description='Detect objects from implicit shape model votes',
                                     formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    parser.add_argument('--config-name', default=None,
                        help='name of the config dir in ismvote/settings, or path to a config file')
    parser.add_argument('--model-path', default='',
                        help='voting data (binary or .json) saved after training')
    parser.add_argument('--votes-path', required=True,
                        help='.npz file with the votes cast for the scene')
    parser.add_argument('--scene-path', default='',
                        help='.npy file with the scene points, xyz or xyz and normals')
    parser.add_argument('--output-dir', default='detections',
                        help='directory for logs and detection results')
    parser.add_argument('--ground-truth', type=int, default=None,
                        help='ground truth class id written to the detection log')
    parser.add_argument('--single-object', action='store_true', default=False,
                        help='treat the scene as one object')
    parser.add_argument('--verbose', action='store_true', default=False,
                        help='log detection records')

    args = parser.parse_args(argv)
    os.makedirs(args.output_dir, exist_ok=True)
    return args


def setup_logging(output_dir, mode, level=logging.INFO):
    """Setup logging."""
    logs_path = join(output_dir, 'logs')
    log_file_name = '{}.log'.format(mode)
    os.makedirs(logs_path, exist_ok=True)
    log_path = join(logs_path, log_file_name)

    logger = logging.getLogger()
    logger.setLevel(level)
    logger.handlers = []

    fmt = logging.Formatter(fmt='%(asctime)-15s %(levelname)-5s %(name)-15s - %(message)s')
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(fmt)
    logger.addHandler(stream_handler)

    file_handler = logging.FileHandler(log_path)
    file_handler.setFormatter(fmt)
    logger.addHandler(file_handler)
    logger.info('Log file is %s', log_path)


def save_settings(args, configs):
    """Save the arguments and the resolved configs next to the results."""
    settings_path = join(args.output_dir, 'settings')
    os.makedirs(settings_path, exist_ok=True)
    logging.info('Save settings to %s', settings_path)

    with open(join(settings_path, 'args.json'), 'w') as file:
        json.dump(vars(args), file, indent=4)
    with open(join(settings_path, 'config.json'), 'w') as file:
        json.dump(dict(configs), file, indent=4)
