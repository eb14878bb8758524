from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class FaceMatch:
    matched: bool
    confidence: float
    identity: Optional[str] = None


class FaceMatcher(Protocol):
    """Face similarity oracle keyed by identity.

    ``register`` stores the reference for a uid; ``match`` compares a probe
    only against that uid's reference. Raise BiometricFailure when an image
    contains no usable face.
    """

    def register(self, uid: str, image: bytes) -> None:
        raise NotImplementedError

    def unregister(self, uid: str) -> None:
        raise NotImplementedError

    def is_registered(self, uid: str) -> bool:
        raise NotImplementedError

    def match(self, uid: str, probe: bytes) -> FaceMatch:
        raise NotImplementedError
