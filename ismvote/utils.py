"""Utils"""
import os
import json
from attrdict import AttrDict
from importlib import import_module
import yaml

from ismvote.constants import SETTINGS_PATH


## File ops ##

def read_json(path):
    """Read json file to AttrDict."""
    with open(path) as file:
        json_dict = json.loads(file.read())
    return AttrDict(json_dict)

def read_yaml(path):
    """Read yaml file to AttrDict."""
    with open(path, 'r') as file:
        yaml_dict = yaml.safe_load(file)
    return AttrDict(yaml_dict or {})


# Modules

def get_clustering(configs):
    """Instantiate the clustering strategy named in the configs."""
    return import_module('ismvote.clustering.' + configs.clustering.method).Clustering(configs)

def get_descriptor(configs):
    """Instantiate the global descriptor named in the configs."""
    return import_module('ismvote.global_features.' + configs.global_features.descriptor).Descriptor(configs)


# Load settings

def get_configs(config_name=None):
    """Default configs, updated by the experiment config (json or yaml) if one exists."""
    default_config_path = os.path.join(SETTINGS_PATH, 'default_config.json')
    configs = read_json(default_config_path)
    if not config_name:
        return configs

    experiment_dir = os.path.join(SETTINGS_PATH, config_name)
    if os.path.isfile(os.path.join(experiment_dir, 'config.json')):
        configs += read_json(os.path.join(experiment_dir, 'config.json'))
    elif os.path.isfile(os.path.join(experiment_dir, 'config.yaml')):
        configs += read_yaml(os.path.join(experiment_dir, 'config.yaml'))
    elif os.path.isfile(config_name):
        # Path to a config file outside the settings directory
        reader = read_yaml if config_name.endswith(('.yaml', '.yml')) else read_json
        configs += reader(config_name)
    return configs
