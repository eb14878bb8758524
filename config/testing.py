import os
from datetime import timedelta

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "smart_attendance_test"),
}

DEBUG = False
TESTING = True
PERMANENT_SESSION_LIFETIME = timedelta(days=7)

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

QR_REFRESH_SECONDS = 10
FRESHNESS_WINDOW_MS = 30_000
GEOFENCE_RADIUS_M = 20.0

MEDIA_ROOT = os.getenv("MEDIA_ROOT", "media-test")
MEDIA_URL = "/media/"
MAX_IMAGE_BYTES = 5 * 1024 * 1024

FACE_MATCHER = "none"
FACE_MATCH_TOLERANCE = 0.6
REQUIRE_FACE_MATCH = False
REQUIRE_STUDENT_PHOTO = True
