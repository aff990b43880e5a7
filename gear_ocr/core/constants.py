"""Application-wide constants."""

APP_NAME = "gear-ocr-overlay"
VERSION = "1.0.0"

SUPPORTED_IMAGE_FORMATS = (".png", ".jpg", ".jpeg", ".bmp")

# Semantic zone names
ZONE_TITLE = "title"
ZONE_TYPE = "type"
ZONE_STAT_NAMES = "stat_names"
ZONE_DIGITS = "digits"
ZONE_STATS = "stats"  # derived: stat_names + digits

PERCENT_UNIT = "%"

# Signature weights applied to (R, G, B)
SIGNATURE_WEIGHTS = (3, 4, 2)
