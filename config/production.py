import os
from datetime import timedelta

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "smart_attendance"),
}

DEBUG = False
PERMANENT_SESSION_LIFETIME = timedelta(days=int(os.getenv("SESSION_LIFETIME_DAYS", "7")))

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

QR_REFRESH_SECONDS = int(os.getenv("QR_REFRESH_SECONDS", "10"))
FRESHNESS_WINDOW_MS = int(os.getenv("FRESHNESS_WINDOW_MS", "30000"))
GEOFENCE_RADIUS_M = float(os.getenv("GEOFENCE_RADIUS_M", "20"))

MEDIA_ROOT = os.getenv("MEDIA_ROOT", "/var/lib/smart_attendance/media")
MEDIA_URL = os.getenv("MEDIA_URL", "/media/")
MAX_IMAGE_BYTES = int(os.getenv("MAX_IMAGE_BYTES", str(5 * 1024 * 1024)))

FACE_MATCHER = os.getenv("FACE_MATCHER", "none")
FACE_MATCH_TOLERANCE = float(os.getenv("FACE_MATCH_TOLERANCE", "0.6"))
REQUIRE_FACE_MATCH = bool(int(os.getenv("REQUIRE_FACE_MATCH", "0")))
REQUIRE_STUDENT_PHOTO = bool(int(os.getenv("REQUIRE_STUDENT_PHOTO", "1")))
