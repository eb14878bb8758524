from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..biometrics.image import CapturedImage, resize_for_profile, validate_image
from ..biometrics.matcher import FaceMatcher
from ..biometrics.storage import ObjectStorage
from ..common.validators import require_email, require_non_empty
from ..core.constants import MAX_IMAGE_BYTES, MIN_PASSWORD_LENGTH, PROFILE_PICTURE_PATH
from ..core.enums import Role, SignupStage
from ..core.exceptions import (
    BiometricFailure,
    DomainError,
    ProfileWriteFailure,
    StorageFailure,
    ValidationError,
    WeakCredential,
)
from .model import Identity, UserProfile
from .repository import AuthProvider, ProfileRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignupRequest:
    name: str
    email: str
    password: str
    role: Role
    roll_no: Optional[str] = None
    section: Optional[str] = None
    image: Optional[CapturedImage] = None


@dataclass(frozen=True)
class SignupResult:
    success: bool
    stage: SignupStage
    message: str
    profile: Optional[UserProfile] = None
    error_kind: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"success": self.success, "stage": self.stage.value, "message": self.message}
        if self.profile is not None:
            data["user"] = self.profile.to_dict()
        if self.error_kind:
            data["kind"] = self.error_kind
        return data


class SignupOrchestrator:
    """Creates identity, profile and (for students) face enrollment as one unit.

    Stages: idle -> creating_identity -> [uploading_biometric] -> saving_profile
    -> complete, or failed. Nothing is created before creating_identity.
    A failure up to and including the biometric upload deletes whatever was
    already created, so no half-made account survives. Only the final
    face-image reference update is best-effort: the account stays usable
    without it.
    """

    def __init__(
        self,
        auth: AuthProvider,
        profiles: ProfileRepository,
        *,
        storage: Optional[ObjectStorage] = None,
        faces: Optional[FaceMatcher] = None,
        require_student_photo: bool = True,
        max_image_bytes: int = MAX_IMAGE_BYTES,
    ):
        self._auth = auth
        self._profiles = profiles
        self._storage = storage
        self._faces = faces
        self._require_student_photo = bool(require_student_photo and storage is not None)
        self._max_image_bytes = int(max_image_bytes)

    def signup(
        self,
        request: SignupRequest,
        *,
        on_stage: Optional[Callable[[SignupStage], None]] = None,
    ) -> SignupResult:
        def enter(stage: SignupStage) -> SignupStage:
            if on_stage:
                try:
                    on_stage(stage)
                except Exception:
                    logger.warning("Signup stage listener failed at %s", stage.value, exc_info=True)
            return stage

        enter(SignupStage.IDLE)
        try:
            request = self._validate(request)
        except (ValidationError, WeakCredential) as e:
            return self._failed(enter, str(e), e.kind)

        # creating_identity
        enter(SignupStage.CREATING_IDENTITY)
        try:
            identity = self._auth.create_identity(request.email, request.password)
        except DomainError as e:
            return self._failed(enter, str(e), e.kind)
        except Exception:
            logger.exception("Identity creation failed for %s", request.email)
            return self._failed(enter, "Failed to create account. Please try again.", StorageFailure.kind)

        profile = UserProfile(
            uid=identity.uid,
            name=request.name,
            email=request.email,
            role=request.role,
            roll_no=request.roll_no if request.role == Role.STUDENT else None,
            section=request.section if request.role == Role.STUDENT else None,
        )
        try:
            self._profiles.save(profile)
        except Exception:
            logger.exception("Initial profile save failed for %s", identity.uid)
            self._rollback(identity, profile_written=False)
            return self._failed(
                enter,
                "Failed to save your profile. Your account was not created. Please try again.",
                ProfileWriteFailure.kind,
            )

        # uploading_biometric
        face_image_url: Optional[str] = None
        if request.role == Role.STUDENT and request.image is not None and self._storage is not None:
            enter(SignupStage.UPLOADING_BIOMETRIC)
            try:
                face_image_url = self._upload_biometric(identity.uid, request.image)
            except Exception as e:
                logger.warning("Biometric enrollment failed for %s: %s", identity.uid, e)
                self._rollback(identity, profile_written=True)
                message = str(e) if isinstance(e, DomainError) else "An unknown error occurred"
                return self._failed(
                    enter,
                    f"Failed to process your photo: {message}. Your account was not created. Please try again.",
                    BiometricFailure.kind,
                )

        # saving_profile
        enter(SignupStage.SAVING_PROFILE)
        if face_image_url:
            try:
                self._profiles.update_face_image(identity.uid, face_image_url)
                profile = profile.with_face_image(face_image_url)
            except Exception:
                logger.warning("Could not store face image URL for %s; keeping account", identity.uid, exc_info=True)

        stage = enter(SignupStage.COMPLETE)
        logger.info("Account created: %s (%s)", identity.uid, request.role.value)
        return SignupResult(success=True, stage=stage, message="Account created successfully!", profile=profile)

    def _validate(self, request: SignupRequest) -> SignupRequest:
        if not request.name or not request.name.strip() or not request.email or not request.password:
            raise ValidationError("Name, email, and password cannot be empty.")
        name = require_non_empty(request.name, "Name")
        email = require_email(request.email)
        if len(request.password) < MIN_PASSWORD_LENGTH:
            raise WeakCredential(f"Password should be at least {MIN_PASSWORD_LENGTH} characters.")

        roll_no = section = None
        if request.role == Role.STUDENT:
            if not (request.roll_no or "").strip() or not (request.section or "").strip():
                raise ValidationError("Roll No. and Section are required for students.")
            roll_no = request.roll_no.strip()
            section = request.section.strip()
            if self._require_student_photo and request.image is None:
                raise ValidationError("Please capture a photo to proceed.")

        return SignupRequest(
            name=name,
            email=email,
            password=request.password,
            role=request.role,
            roll_no=roll_no,
            section=section,
            image=request.image,
        )

    def _upload_biometric(self, uid: str, image: CapturedImage) -> str:
        validate_image(image, max_bytes=self._max_image_bytes)
        if self._faces is not None:
            self._faces.register(uid, image.data)
        resized = resize_for_profile(image)
        return self._storage.put(PROFILE_PICTURE_PATH.format(uid=uid), resized.data, content_type=resized.content_type)

    def _rollback(self, identity: Identity, *, profile_written: bool) -> None:
        """Compensating deletes; each runs even if an earlier one fails."""
        steps: list[tuple[str, Callable[[], object]]] = []
        if profile_written:
            steps.append(("profile", lambda: self._profiles.delete(identity.uid)))
            if self._storage is not None:
                key = PROFILE_PICTURE_PATH.format(uid=identity.uid)
                steps.append(("profile picture", lambda: self._storage.delete(key)))
            if self._faces is not None:
                steps.append(("face registration", lambda: self._faces.unregister(identity.uid)))
        steps.append(("identity", lambda: self._auth.delete_identity(identity.uid)))

        for label, step in steps:
            try:
                step()
            except Exception:
                logger.error("Rollback of %s failed for %s", label, identity.uid, exc_info=True)

    @staticmethod
    def _failed(enter: Callable[[SignupStage], SignupStage], message: str, kind: str) -> SignupResult:
        return SignupResult(success=False, stage=enter(SignupStage.FAILED), message=message, error_kind=kind)
