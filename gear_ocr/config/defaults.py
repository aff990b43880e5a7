"""Default configuration values."""

from typing import Any, Dict

DEFAULT_CONFIG: Dict[str, Any] = {
    # Overlay / ROI
    "roi": {"x": 200, "y": 120, "width": 560, "height": 720},
    "min_roi_width": 80,
    "min_roi_height": 80,

    # Auto capture
    "auto_interval_ms": 800,
    "signature_sample_width": 220,
    "signature_history_size": 5,
    "change_threshold": 46.0,  # ~2% of the 0..2295 signature range
    "stable_frames": 2,
    "signature_zones": ["title", "digits"],

    # Zone layout, [left, top, w, h] as fractions of the captured ROI
    "zone_ratios": {
        "title": [0.05, 0.03, 0.90, 0.08],
        "type": [0.05, 0.11, 0.60, 0.05],
        "stat_names": [0.05, 0.30, 0.55, 0.60],
        "digits": [0.60, 0.30, 0.35, 0.60],
    },

    # Preprocessing
    "dark_ui_threshold": 110,
    "min_ocr_width": 600,
    "max_upscale": 4.0,
    "label_gamma": 0.8,
    "sharpen_amount": 0.6,
    "digit_threshold": 150,
    "digit_threshold_alt": 110,

    # OCR
    "tesseract_cmd": "",
    "ocr_language": "eng",
    "label_psm_modes": [7, 6],
    "words_psm_modes": [6, 4],
    "digit_psm_mode": 6,
    "digit_whitelist": "0123456789+.,%",

    # Reconstruction
    "line_tolerance_px": 18,
    "row_tolerance_px": 14,
    "merge_gap_px": 8,
    "label_window_px": 420,
    "min_token_confidence": 0.35,
    "min_token_height_px": 6,
    "upgrade_blue_margin": 30,
    "upgrade_blue_min": 80,
    "fuzzy_max_ratio": 0.34,
    "max_main_stats": 1,
    "percent_repair_enabled": True,
    "extra_stat_labels": [],

    # Debug and Logging Settings
    "debug": False,
    "log_level": "INFO",
    "log_dir": "logs",
    "enable_file_logging": False,
    "structured_logging": False,
}
