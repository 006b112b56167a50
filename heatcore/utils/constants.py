"""
Application Constants

This module contains all engine-wide constants to avoid magic numbers
and improve maintainability.
"""

# Geodesy
EARTH_RADIUS_M = 6371000.0  # metres
METERS_PER_DEGREE_LAT = 111000.0  # flat-earth approximation used for grid binning
MAX_GRID_LATITUDE = 89.9  # cos() guard near the poles

# Time conversion constant
SECONDS_PER_DAY = 86400.0

# Severity scale
MIN_SEVERITY = 1
MAX_SEVERITY = 10

# Default heatmap parameters (custom preset)
DEFAULT_TIME_DECAY_FACTOR = 0.5
DEFAULT_SEVERITY_WEIGHT_MULTIPLIER = 2.0
DEFAULT_GRID_SIZE_METERS = 100.0
DEFAULT_MIN_CLUSTER_SIZE = 2
DEFAULT_NORMALIZE_WEIGHTS = True

# Relative time windows accepted by the filter pipeline (days)
TIME_RANGE_DAYS = {
    "24h": 1.0,
    "7d": 7.0,
    "30d": 30.0,
}

# Aggregation modes
MODE_RAW = "raw"
MODE_GRID = "grid"
MODE_CLUSTERED = "clustered"
MODE_ALIASES = {
    "raw": MODE_RAW,
    "data": MODE_RAW,  # name used by the map client for the unbinned endpoint
    "grid": MODE_GRID,
    "clustered": MODE_CLUSTERED,
    "cluster": MODE_CLUSTERED,
}

# Risk grouping
GROUP_BY_ZONE = "zone"
GROUP_BY_CATEGORY = "category"
GROUP_BY_ZONE_CATEGORY = "zone_category"
VALID_GROUP_BY = (GROUP_BY_ZONE, GROUP_BY_CATEGORY, GROUP_BY_ZONE_CATEGORY)

# Environment overrides for packaged YAML tables
ENV_PRESETS_PATH = "HEATCORE_PRESETS_PATH"
ENV_RULEBOOK_PATH = "HEATCORE_RULEBOOK_PATH"
