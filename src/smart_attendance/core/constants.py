"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

QR_REFRESH_SECONDS = 10
FRESHNESS_WINDOW_MS = 30_000
GEOFENCE_RADIUS_M = 20.0
EARTH_RADIUS_M = 6_371_000.0

MIN_PASSWORD_LENGTH = 6
MAX_IMAGE_BYTES = 5 * 1024 * 1024
FACE_MATCH_TOLERANCE = 0.6

PROFILE_PICTURE_PATH = "profile_pictures/{uid}.jpg"
DEFAULT_HISTORY_LIMIT = 30
