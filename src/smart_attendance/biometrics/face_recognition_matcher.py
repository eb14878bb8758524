from __future__ import annotations

import io
import logging
import threading
from typing import Optional

import face_recognition
import numpy as np

from ..core.constants import FACE_MATCH_TOLERANCE, PROFILE_PICTURE_PATH
from ..core.exceptions import BiometricFailure, StorageFailure
from .matcher import FaceMatch, FaceMatcher
from .storage import ObjectStorage

logger = logging.getLogger(__name__)


class FaceRecognitionMatcher(FaceMatcher):
    """dlib face encodings compared per identity.

    References are cached in memory; on a cache miss the stored profile
    picture is re-encoded.
    """

    def __init__(self, storage: Optional[ObjectStorage] = None, *, tolerance: float = FACE_MATCH_TOLERANCE):
        self._storage = storage
        self._tolerance = float(tolerance)
        self._lock = threading.Lock()
        self._encodings: dict[str, np.ndarray] = {}

    @staticmethod
    def _encode(image: bytes) -> np.ndarray:
        try:
            pixels = face_recognition.load_image_file(io.BytesIO(image))
        except Exception as e:
            raise BiometricFailure("Could not read the face image") from e

        encodings = face_recognition.face_encodings(pixels)
        if not encodings:
            raise BiometricFailure("No face detected. Please face the camera directly.")
        if len(encodings) > 1:
            raise BiometricFailure("More than one face detected.")
        return encodings[0]

    def register(self, uid: str, image: bytes) -> None:
        encoding = self._encode(image)
        with self._lock:
            self._encodings[uid] = encoding
        logger.info("Registered face reference for %s", uid)

    def unregister(self, uid: str) -> None:
        with self._lock:
            self._encodings.pop(uid, None)

    def is_registered(self, uid: str) -> bool:
        return self._reference(uid) is not None

    def match(self, uid: str, probe: bytes) -> FaceMatch:
        reference = self._reference(uid)
        if reference is None:
            raise BiometricFailure("No registered face found. Please register your face first.")

        probe_encoding = self._encode(probe)
        distance = float(face_recognition.face_distance([reference], probe_encoding)[0])
        matched = distance <= self._tolerance
        confidence = max(0.0, 1.0 - distance)
        return FaceMatch(matched=matched, confidence=confidence, identity=uid if matched else None)

    def _reference(self, uid: str) -> Optional[np.ndarray]:
        with self._lock:
            cached = self._encodings.get(uid)
        if cached is not None or self._storage is None:
            return cached

        try:
            image = self._storage.get(PROFILE_PICTURE_PATH.format(uid=uid))
        except StorageFailure:
            return None
        encoding = self._encode(image)
        with self._lock:
            self._encodings[uid] = encoding
        return encoding
