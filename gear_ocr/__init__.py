"""
Gear OCR overlay: reads gear stats from a watched screen region.
"""

__version__ = "1.0.0"
__author__ = "Gear OCR Overlay Team"

from .config.settings import Config, load_config, save_config
from .core.entities import GearRecord, StatLine, Region

__all__ = [
    "Config", "load_config", "save_config",
    "GearRecord", "StatLine", "Region"
]
