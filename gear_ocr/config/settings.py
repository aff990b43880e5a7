"""Configuration dataclass and loading utilities.

Provides a strongly-typed configuration object that is injected into
services instead of relying on module-level constants. Zone ratios,
thresholds and scoring weights all live here so that one pipeline can be
tuned to a UI layout without code changes.
"""
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple
import copy, json, os, logging
from .defaults import DEFAULT_CONFIG
from .env_config import load_environment_config, apply_environment_overrides, EnvironmentError
from ..core.entities import Region, ZoneRatio

logger = logging.getLogger(__name__)


def _default(key: str):
    return field(default_factory=lambda: copy.deepcopy(DEFAULT_CONFIG[key]))


@dataclass(slots=True)
class Config:
    # Overlay / ROI
    roi: Dict[str, int] = _default("roi")
    min_roi_width: int = DEFAULT_CONFIG["min_roi_width"]
    min_roi_height: int = DEFAULT_CONFIG["min_roi_height"]

    # Auto capture
    auto_interval_ms: int = DEFAULT_CONFIG["auto_interval_ms"]
    signature_sample_width: int = DEFAULT_CONFIG["signature_sample_width"]
    signature_history_size: int = DEFAULT_CONFIG["signature_history_size"]
    change_threshold: float = DEFAULT_CONFIG["change_threshold"]
    stable_frames: int = DEFAULT_CONFIG["stable_frames"]
    signature_zones: List[str] = _default("signature_zones")

    # Zone layout
    zone_ratios: Dict[str, List[float]] = _default("zone_ratios")

    # Preprocessing
    dark_ui_threshold: int = DEFAULT_CONFIG["dark_ui_threshold"]
    min_ocr_width: int = DEFAULT_CONFIG["min_ocr_width"]
    max_upscale: float = DEFAULT_CONFIG["max_upscale"]
    label_gamma: float = DEFAULT_CONFIG["label_gamma"]
    sharpen_amount: float = DEFAULT_CONFIG["sharpen_amount"]
    digit_threshold: int = DEFAULT_CONFIG["digit_threshold"]
    digit_threshold_alt: int = DEFAULT_CONFIG["digit_threshold_alt"]

    # OCR
    tesseract_cmd: str = DEFAULT_CONFIG["tesseract_cmd"]
    ocr_language: str = DEFAULT_CONFIG["ocr_language"]
    label_psm_modes: List[int] = _default("label_psm_modes")
    words_psm_modes: List[int] = _default("words_psm_modes")
    digit_psm_mode: int = DEFAULT_CONFIG["digit_psm_mode"]
    digit_whitelist: str = DEFAULT_CONFIG["digit_whitelist"]

    # Reconstruction
    line_tolerance_px: int = DEFAULT_CONFIG["line_tolerance_px"]
    row_tolerance_px: int = DEFAULT_CONFIG["row_tolerance_px"]
    merge_gap_px: int = DEFAULT_CONFIG["merge_gap_px"]
    label_window_px: int = DEFAULT_CONFIG["label_window_px"]
    min_token_confidence: float = DEFAULT_CONFIG["min_token_confidence"]
    min_token_height_px: int = DEFAULT_CONFIG["min_token_height_px"]
    upgrade_blue_margin: int = DEFAULT_CONFIG["upgrade_blue_margin"]
    upgrade_blue_min: int = DEFAULT_CONFIG["upgrade_blue_min"]
    fuzzy_max_ratio: float = DEFAULT_CONFIG["fuzzy_max_ratio"]
    max_main_stats: int = DEFAULT_CONFIG["max_main_stats"]
    percent_repair_enabled: bool = DEFAULT_CONFIG["percent_repair_enabled"]
    extra_stat_labels: List[str] = _default("extra_stat_labels")

    # Debug and Logging Settings
    debug: bool = DEFAULT_CONFIG["debug"]
    log_level: str = DEFAULT_CONFIG["log_level"]
    log_dir: str = DEFAULT_CONFIG["log_dir"]
    enable_file_logging: bool = DEFAULT_CONFIG["enable_file_logging"]
    structured_logging: bool = DEFAULT_CONFIG["structured_logging"]

    # Arbitrary extra values retained for forward compatibility
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        # merge extra keys at top-level for saving
        extra = d.pop("extra", {})
        d.update(extra)
        return d

    def get(self, key: str, default: Any = None) -> Any:
        if hasattr(self, key):
            return getattr(self, key)
        return self.extra.get(key, default)

    def get_roi(self) -> Region:
        return Region.from_dict(self.roi)

    def get_zone_ratios(self) -> Dict[str, ZoneRatio]:
        return {name: ZoneRatio.from_sequence(values) for name, values in self.zone_ratios.items()}

    def get_signature_zones(self) -> List[ZoneRatio]:
        """Zones sampled by the change detector; the whole ROI when none are configured."""
        ratios = self.get_zone_ratios()
        zones = [ratios[name] for name in self.signature_zones if name in ratios]
        return zones or [ZoneRatio(0.0, 0.0, 1.0, 1.0)]

    @property
    def auto_interval_s(self) -> float:
        return self.auto_interval_ms / 1000.0


# (key, type, min, max) ranges checked on load
_NUMERIC_RANGES: Tuple[Tuple[str, type, float, float], ...] = (
    ("min_roi_width", int, 1, 10000),
    ("min_roi_height", int, 1, 10000),
    ("auto_interval_ms", int, 100, 60000),
    ("signature_sample_width", int, 16, 4096),
    ("signature_history_size", int, 2, 64),
    ("change_threshold", float, 0.0, 2295.0),
    ("stable_frames", int, 1, 32),
    ("dark_ui_threshold", int, 0, 255),
    ("min_ocr_width", int, 1, 10000),
    ("max_upscale", float, 1.0, 16.0),
    ("label_gamma", float, 0.05, 10.0),
    ("sharpen_amount", float, 0.0, 5.0),
    ("digit_threshold", int, 0, 255),
    ("digit_threshold_alt", int, 0, 255),
    ("digit_psm_mode", int, 0, 13),
    ("line_tolerance_px", int, 0, 1000),
    ("row_tolerance_px", int, 0, 1000),
    ("merge_gap_px", int, 0, 1000),
    ("label_window_px", int, 1, 10000),
    ("min_token_confidence", float, 0.0, 1.0),
    ("min_token_height_px", int, 0, 1000),
    ("upgrade_blue_margin", int, 0, 255),
    ("upgrade_blue_min", int, 0, 255),
    ("fuzzy_max_ratio", float, 0.0, 1.0),
    ("max_main_stats", int, 0, 2),
)


def load_config(path: str = "config.json", environ: Optional[Dict[str, str]] = None) -> Config:
    """Load configuration from a JSON file, merged over defaults, then environment overrides.

    Invalid values are replaced by their defaults with a warning; a broken
    file never prevents startup.

    Args:
        path: Path to config.json file
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Config: Loaded and validated configuration
    """
    data: Dict[str, Any] = {}

    if os.path.isfile(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded_data = json.load(f)
            if loaded_data is None:
                logger.warning(f"Configuration file '{path}' is empty, using defaults")
            elif not isinstance(loaded_data, dict):
                logger.error(f"Configuration file '{path}' does not contain a valid JSON object, using defaults")
            else:
                data = loaded_data
                logger.info(f"Successfully loaded configuration from '{path}'")
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse JSON configuration file '{path}': {e}. Using defaults.")
        except PermissionError:
            logger.error(f"Permission denied reading configuration file '{path}'. Using defaults.")
        except OSError as e:
            logger.error(f"Error reading configuration file '{path}': {e}. Using defaults.")
    else:
        logger.info(f"Configuration file '{path}' does not exist. Using defaults.")

    merged = {**copy.deepcopy(DEFAULT_CONFIG), **data}

    try:
        env_config = load_environment_config(environ)
        merged = apply_environment_overrides(merged, env_config)
    except EnvironmentError as e:
        logger.warning(f"Ignoring invalid environment configuration: {e}")

    _validate_numeric_settings(merged)
    _validate_roi(merged)
    _validate_zone_ratios(merged)

    # capture unknown keys
    known = set(Config.__dataclass_fields__) - {"extra"}
    extra = {k: v for k, v in merged.items() if k not in known}
    if extra:
        logger.info(f"Found extra configuration keys: {list(extra.keys())}")

    return Config(**{k: merged[k] for k in known if k in merged}, extra=extra)


def save_config(cfg: Config, path: str = "config.json") -> None:
    """Save configuration to JSON file, keeping a backup until the write succeeds."""
    backup_path = f"{path}.backup"
    try:
        if os.path.exists(path):
            try:
                with open(path, "r", encoding="utf-8") as src, open(backup_path, "w", encoding="utf-8") as dst:
                    dst.write(src.read())
                logger.debug(f"Created backup configuration at '{backup_path}'")
            except OSError as e:
                logger.warning(f"Failed to create configuration backup: {e}")

        with open(path, "w", encoding="utf-8") as f:
            json.dump(cfg.to_dict(), f, indent=2, ensure_ascii=False)
        logger.info(f"Configuration saved successfully to '{path}'")

        if os.path.exists(backup_path):
            os.remove(backup_path)
    except PermissionError:
        logger.error(f"Permission denied writing configuration file '{path}'")
    except OSError as e:
        logger.error(f"OS error saving configuration file '{path}': {e}")


def _validate_numeric_settings(config_dict: Dict[str, Any]) -> None:
    """Replace out-of-range or mistyped numeric settings with defaults."""
    for key, value_type, min_val, max_val in _NUMERIC_RANGES:
        value = config_dict.get(key)
        try:
            if isinstance(value, bool):
                raise TypeError("bool is not numeric")
            numeric = value_type(value)
            if not min_val <= numeric <= max_val:
                raise ValueError(f"{numeric} outside [{min_val}, {max_val}]")
            config_dict[key] = numeric
        except (TypeError, ValueError) as e:
            logger.warning(f"Invalid setting '{key}'={value!r} ({e}). Using default.")
            config_dict[key] = DEFAULT_CONFIG[key]


def _validate_roi(config_dict: Dict[str, Any]) -> None:
    roi = config_dict.get("roi")
    try:
        region = Region.from_dict(roi)
        if region.width <= 0 or region.height <= 0:
            raise ValueError("ROI must have a positive size")
        config_dict["roi"] = region.to_dict()
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Invalid ROI setting {roi!r} ({e}). Using default.")
        config_dict["roi"] = copy.deepcopy(DEFAULT_CONFIG["roi"])


def _validate_zone_ratios(config_dict: Dict[str, Any]) -> None:
    """Drop malformed zone entries; fall back to default ratios for those names."""
    zones = config_dict.get("zone_ratios")
    if not isinstance(zones, dict):
        logger.warning("Setting 'zone_ratios' is not an object. Using defaults.")
        config_dict["zone_ratios"] = copy.deepcopy(DEFAULT_CONFIG["zone_ratios"])
        return

    valid: Dict[str, List[float]] = {}
    for name, values in zones.items():
        try:
            valid[name] = list(ZoneRatio.from_sequence(values).as_tuple())
        except (TypeError, ValueError) as e:
            logger.warning(f"Invalid zone ratio '{name}'={values!r} ({e}).")
            if name in DEFAULT_CONFIG["zone_ratios"]:
                valid[name] = list(DEFAULT_CONFIG["zone_ratios"][name])
    config_dict["zone_ratios"] = valid
