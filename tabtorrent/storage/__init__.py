"""
Storage Layer.

This package handles configuration persistence and the locations of the
configuration and log directories.
"""

from .config_manager import ConfigManager, get_config_dir, get_data_dir

__all__ = ["ConfigManager", "get_config_dir", "get_data_dir"]
