from __future__ import annotations

from pathlib import Path
from typing import Protocol

from ..core.exceptions import StorageFailure


class ObjectStorage(Protocol):
    """Blob storage returning a retrievable reference URL."""

    def put(self, key: str, data: bytes, *, content_type: str) -> str:
        raise NotImplementedError

    def get(self, key: str) -> bytes:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError


class LocalObjectStorage(ObjectStorage):
    """Stores objects as files under ``root``; URLs are ``base_url + key``."""

    def __init__(self, root: str | Path, *, base_url: str = "/media/"):
        self._root = Path(root).resolve()
        self._base_url = base_url if base_url.endswith("/") else base_url + "/"

    def _path_for(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if self._root not in path.parents:
            raise StorageFailure(f"Invalid object key: {key!r}")
        return path

    def put(self, key: str, data: bytes, *, content_type: str) -> str:
        path = self._path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StorageFailure(f"Failed to store {key}", cause=e) from e
        return self._base_url + key

    def get(self, key: str) -> bytes:
        try:
            return self._path_for(key).read_bytes()
        except OSError as e:
            raise StorageFailure(f"Failed to read {key}", cause=e) from e

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageFailure(f"Failed to delete {key}", cause=e) from e
        return True

    @property
    def root(self) -> Path:
        return self._root
