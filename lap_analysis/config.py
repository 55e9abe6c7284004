"""
Configuration file for lap analysis.

Contains thresholds for start/finish detection, lap splitting, sectors
and lap filtering.
"""

# =============================================================================
# Projection Settings
# =============================================================================

EARTH_RADIUS_M = 6371000.0      # Mean Earth radius (meters)


# =============================================================================
# Start/Finish Detection Settings
# =============================================================================

SF_MIN_SAMPLES = 50             # Recordings shorter than this get no S/F line

SF_EDGE_MARGIN = 20             # Samples ignored at each end when searching
                                 # for the maximum speed point

SF_DIRECTION_DISTANCE = 20.0    # Distance walked back from the S/F point to
                                 # average the travel direction (meters)

SF_LINE_WIDTH = 40.0            # Total width of the S/F detection line (meters)
                                 # Centered on the S/F point, 20m each side


# =============================================================================
# Lap Splitting Settings
# =============================================================================

MIN_LAP_POINTS = 50             # Minimum samples in a lap before another
                                 # S/F crossing may close it
                                 # Prevents double counts from GPS jitter

MIN_SPLIT_SAMPLES = 10          # Below this the recording is always one lap


# =============================================================================
# Geometry Settings
# =============================================================================

PARALLEL_EPSILON = 1e-10        # Determinant below this = parallel segments

INTERSECTION_TOLERANCE = 1e-9   # Rounding slack on segment parameters
                                 # A line through a recorded sample must still
                                 # register on one of its two segments


# =============================================================================
# Sector Settings
# =============================================================================

SECTOR_COUNT = 4                # Sectors per lap (SECTOR_COUNT - 1 boundaries)

SECTOR_CROSSING_EPSILON = 0.001 # Crossings closer than this to a sample
                                 # (as segment fraction) tag that sample
                                 # instead of injecting a new one

SECTOR_SUM_TOLERANCE_MS = 10.0  # Allowed mismatch between summed sector
                                 # times and lap time before warning (ms)


# =============================================================================
# Lap Filtering Settings
# =============================================================================

OUTLIER_TOLERANCE_PERCENT = 15.0  # Allowed deviation from median lap time (%)

OUTLIER_MIN_LAPS = 3            # Fewer laps than this = nothing is an outlier


# =============================================================================
# Display Settings
# =============================================================================

DEFAULT_TRACK_NAME = 'Track'

# Lap colours, cycled by lap index
LAP_COLORS = [
    '#FF6B00',  # Bright orange
    '#00FFD1',  # Neon cyan
    '#FF0080',  # Neon pink
    '#FFD700',  # Gold
    '#7FFF00',  # Neon lime
    '#FF1493',  # Deep pink
    '#00E5FF',  # Bright blue
    '#FFB000',  # Amber
    '#B026FF',  # Neon purple
    '#00FF7F',  # Spring green
    '#FF4500',  # Orange red
    '#39FF14',  # Neon green
    '#FF69B4',  # Hot pink
    '#00BFFF',  # Deep sky blue
    '#FFAA00',  # Orange yellow
    '#DA70D6',  # Orchid
]
