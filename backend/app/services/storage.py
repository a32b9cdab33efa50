import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List
from app.core.config import settings
from app.core.errors import StorageError

logger = logging.getLogger(__name__)


class ObjectStorage(ABC):
    """
    content store addressed by slash-separated object paths.

    implementations: download/upload/list/remove. paths never start with '/'
    """

    @abstractmethod
    def download(self, path: str) -> bytes:
        ...

    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: str) -> str:
        ...

    @abstractmethod
    def list(self, prefix: str) -> List[Dict[str, str]]:
        ...

    @abstractmethod
    def remove(self, paths: Iterable[str]) -> int:
        ...


class LocalObjectStorage(ObjectStorage):
    """object storage backed by a directory on local disk"""

    def __init__(self, root: str = None):
        self.root = os.path.abspath(root or settings.STORAGE_DIR)

    def _resolve(self, path: str) -> str:
        full = os.path.abspath(os.path.join(self.root, path.lstrip("/")))
        if full != self.root and not full.startswith(self.root + os.sep):
            raise StorageError(f"object path escapes storage root: {path}")
        return full

    def download(self, path: str) -> bytes:
        full = self._resolve(path)
        try:
            with open(full, "rb") as f:
                return f.read()
        except OSError as e:
            raise StorageError(f"could not read object {path}: {e}") from e

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        # content type is not persisted on local disk; kept for interface parity
        full = self._resolve(path)
        try:
            os.makedirs(os.path.dirname(full), exist_ok=True)
            with open(full, "wb") as f:
                f.write(data)
        except OSError as e:
            raise StorageError(f"could not write object {path}: {e}") from e
        logger.debug(f"stored {path} ({len(data)} bytes, {content_type})")
        return path

    def list(self, prefix: str) -> List[Dict[str, str]]:
        """objects under prefix, names relative to it"""
        base = self._resolve(prefix)
        if not os.path.isdir(base):
            return []
        results = []
        for dirpath, _, filenames in os.walk(base):
            for filename in filenames:
                rel = os.path.relpath(os.path.join(dirpath, filename), base)
                results.append({"name": rel.replace(os.sep, "/")})
        return sorted(results, key=lambda item: item["name"])

    def remove(self, paths: Iterable[str]) -> int:
        removed = 0
        for path in paths:
            full = self._resolve(path)
            if os.path.isfile(full):
                os.remove(full)
                removed += 1
        return removed


def get_storage() -> ObjectStorage:
    return LocalObjectStorage()
