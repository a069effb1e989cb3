from __future__ import annotations

import enum
import itertools
import logging
import os
import secrets
import string
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable

from .config import DISPLAYING_DIR_NAME, DONE_DIR_NAME, IMAGE_SUFFIX, PENDING_DIR_NAME
from .errors import DisplayInvariantError, InvalidTransition

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


class Bucket(enum.Enum):
    PENDING = PENDING_DIR_NAME
    DISPLAYING = DISPLAYING_DIR_NAME
    DONE = DONE_DIR_NAME

    @property
    def dirname(self) -> str:
        return self.value


_NEXT_BUCKET = {
    Bucket.PENDING: Bucket.DISPLAYING,
    Bucket.DISPLAYING: Bucket.DONE,
}


def next_bucket(bucket: Bucket) -> Bucket:
    try:
        return _NEXT_BUCKET[bucket]
    except KeyError:
        raise InvalidTransition(f"{bucket.name} is terminal") from None


def check_transition(src: Bucket, dst: Bucket) -> None:
    if next_bucket(src) is not dst:
        raise InvalidTransition(f"cannot move from {src.name} to {dst.name}")


def check_single_display(images: Iterable["StoredImage"]) -> None:
    showing = [img.name for img in images if img.bucket is Bucket.DISPLAYING]
    if len(showing) > 1:
        raise DisplayInvariantError(f"{len(showing)} images displaying: {', '.join(showing)}")


@dataclass(frozen=True)
class StoredImage:
    name: str
    bucket: Bucket
    created_at: float


def generate_image_name(now: datetime | None = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M")
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"{stamp}-{suffix}{IMAGE_SUFFIX}"


def _sort_oldest_first(images: list[StoredImage]) -> list[StoredImage]:
    return sorted(images, key=lambda img: (img.created_at, img.name))


class PhotoStore(ABC):
    """Three-bucket image store shared by the webhook and the rotation poller.

    Backends only need to implement the primitives; ordering and transition
    checks live here so every backend enforces the same contract.
    """

    def list_images(self, bucket: Bucket) -> list[StoredImage]:
        return _sort_oldest_first(self._scan(bucket))

    def list_oldest(self, bucket: Bucket) -> StoredImage | None:
        images = self.list_images(bucket)
        return images[0] if images else None

    def move_atomic(self, name: str, src: Bucket, dst: Bucket) -> StoredImage:
        check_transition(src, dst)
        return self._move(name, src, dst)

    def snapshot(self) -> list[StoredImage]:
        return [img for bucket in Bucket for img in self.list_images(bucket)]

    @abstractmethod
    def write_atomic(self, name: str, bucket: Bucket, data: bytes) -> StoredImage:
        ...

    @abstractmethod
    def read_bytes(self, name: str, bucket: Bucket) -> bytes:
        ...

    @abstractmethod
    def _scan(self, bucket: Bucket) -> list[StoredImage]:
        ...

    @abstractmethod
    def _move(self, name: str, src: Bucket, dst: Bucket) -> StoredImage:
        ...


def _creation_time(stat: os.stat_result) -> float:
    # st_birthtime is only reported on some platforms.
    return getattr(stat, "st_birthtime", None) or stat.st_mtime


class FileSystemPhotoStore(PhotoStore):
    """Buckets are sibling directories under ``base_dir``; moves are renames."""

    def __init__(self, base_dir: Path | str) -> None:
        self.base_dir = Path(base_dir)

    def bucket_dir(self, bucket: Bucket) -> Path:
        return self.base_dir / bucket.dirname

    def _ensure_dir(self, bucket: Bucket) -> Path:
        path = self.bucket_dir(bucket)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _scan(self, bucket: Bucket) -> list[StoredImage]:
        directory = self.bucket_dir(bucket)
        try:
            names = os.listdir(directory)
        except FileNotFoundError:
            logger.debug("bucket directory not found: %s", directory)
            return []

        images = []
        for name in names:
            if not name.lower().endswith(IMAGE_SUFFIX):
                continue
            try:
                stat = (directory / name).stat()
            except OSError:
                logger.error("could not stat %s", directory / name, exc_info=True)
                continue
            images.append(StoredImage(name=name, bucket=bucket, created_at=_creation_time(stat)))
        return images

    def write_atomic(self, name: str, bucket: Bucket, data: bytes) -> StoredImage:
        directory = self._ensure_dir(bucket)
        target = directory / name
        tmp_path = directory / f".{name}.part"
        try:
            with tmp_path.open("wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, target)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
        return StoredImage(name=name, bucket=bucket, created_at=_creation_time(target.stat()))

    def read_bytes(self, name: str, bucket: Bucket) -> bytes:
        return (self.bucket_dir(bucket) / name).read_bytes()

    def _move(self, name: str, src: Bucket, dst: Bucket) -> StoredImage:
        source = self.bucket_dir(src) / name
        target = self._ensure_dir(dst) / name
        os.rename(source, target)
        return StoredImage(name=name, bucket=dst, created_at=_creation_time(target.stat()))


class MemoryPhotoStore(PhotoStore):
    """In-process store with the same ordering and transition rules."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._clock = itertools.count(1)
        self._entries: dict[Bucket, dict[str, tuple[float, bytes]]] = {bucket: {} for bucket in Bucket}

    def _scan(self, bucket: Bucket) -> list[StoredImage]:
        with self._lock:
            return [
                StoredImage(name=name, bucket=bucket, created_at=created_at)
                for name, (created_at, _) in self._entries[bucket].items()
            ]

    def write_atomic(self, name: str, bucket: Bucket, data: bytes) -> StoredImage:
        with self._lock:
            created_at = float(next(self._clock))
            self._entries[bucket][name] = (created_at, bytes(data))
        return StoredImage(name=name, bucket=bucket, created_at=created_at)

    def read_bytes(self, name: str, bucket: Bucket) -> bytes:
        with self._lock:
            try:
                return self._entries[bucket][name][1]
            except KeyError:
                raise FileNotFoundError(f"{bucket.dirname}/{name}") from None

    def _move(self, name: str, src: Bucket, dst: Bucket) -> StoredImage:
        with self._lock:
            try:
                created_at, data = self._entries[src].pop(name)
            except KeyError:
                raise FileNotFoundError(f"{src.dirname}/{name}") from None
            self._entries[dst][name] = (created_at, data)
        return StoredImage(name=name, bucket=dst, created_at=created_at)
