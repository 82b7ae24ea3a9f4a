"""
Utility functions for Zone Audio.

This module contains helper functions for map loading and resource path handling.
"""

import os
import json
import logging

logger = logging.getLogger(__name__)


# ==================== File Loading ====================

def load_zone_map(filename):
    """
    Load a zone map from a JSON configuration file.

    Args:
        filename (str): Path to the JSON configuration file

    Returns:
        dict: Map model parameters (the "model" object of the file)

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file has no model or the model has no zone list
    """
    if not os.path.isfile(filename):
        logger.error(f"No zone map file found at {filename}")
        raise FileNotFoundError(f"No zone map file found at {filename}")

    with open(filename, 'r') as f:
        map_params = json.load(f)

    model = map_params.get('model')
    if not isinstance(model, dict):
        raise ValueError(f"Zone map {filename} has no 'model' object")
    if not isinstance(model.get('zones'), list):
        raise ValueError(f"Zone map {filename} has no 'zones' list")

    logger.info(f"Loaded zone map '{model.get('name', filename)}' with {len(model['zones'])} zones")
    return model


# ==================== Resource Paths ====================

def resolve_resource(resource, asset_root, subdir):
    """
    Build the path of an audio resource.

    Absolute paths are returned unchanged; anything else lives under
    <asset_root>/<subdir>/.

    Args:
        resource (str): File name or path
        asset_root (str): Root directory of audio assets
        subdir (str): Channel directory ('music' or 'sfx')

    Returns:
        str: Resource path
    """
    if os.path.isabs(resource):
        return resource
    return os.path.join(asset_root, subdir, resource)
