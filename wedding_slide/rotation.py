from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .errors import RotationError
from .storage import Bucket, PhotoStore, StoredImage

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@dataclass
class RotationResult:
    status_code: int
    content: bytes | None = None
    media_type: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    payload: dict[str, Any] | None = None

    @classmethod
    def image(cls, content: bytes) -> "RotationResult":
        return cls(200, content=content, media_type="image/jpeg", headers=dict(NO_CACHE_HEADERS))

    @classmethod
    def error(cls, status_code: int, message: str) -> "RotationResult":
        return cls(status_code, payload={"message": message})


class RotationHandler:
    """Advances the pending -> displaying -> done conveyor on each poll.

    A poll that finds a pending image rotates and serves it in one step. A
    poll with nothing pending only re-reads the displayed image.
    Concurrent polls are not serialized; two pollers can race on the same
    candidate.
    """

    def __init__(self, store: PhotoStore) -> None:
        self._store = store

    def poll(self) -> RotationResult:
        try:
            candidate = self._store.list_oldest(Bucket.PENDING)
            if candidate is not None:
                return self._rotate(candidate)
            return self._serve_current()
        except Exception:
            logger.exception("error processing photo slide request")
            return RotationResult.error(500, "Internal Server Error")

    def _rotate(self, candidate: StoredImage) -> RotationResult:
        self._archive_displaying()

        try:
            shown = self.promote(candidate)
            content = self._store.read_bytes(shown.name, Bucket.DISPLAYING)
        except RotationError as exc:
            logger.error("CRITICAL: %s", exc)
            return RotationResult.error(500, "Failed to move new image to displaying directory")
        except OSError:
            logger.error("CRITICAL: could not read %s after promotion", candidate.name, exc_info=True)
            return RotationResult.error(500, "Failed to move new image to displaying directory")

        return RotationResult.image(content)

    def promote(self, candidate: StoredImage) -> StoredImage:
        try:
            shown = self._store.move_atomic(candidate.name, Bucket.PENDING, Bucket.DISPLAYING)
        except OSError as exc:
            raise RotationError(f"could not move {candidate.name} from pending to displaying: {exc}") from exc
        logger.info("moved %s from pending to displaying", candidate.name)
        return shown

    def _archive_displaying(self) -> None:
        try:
            current = self._store.list_images(Bucket.DISPLAYING)
        except OSError:
            logger.warning("could not read displaying bucket", exc_info=True)
            return

        for image in current:
            try:
                self._store.move_atomic(image.name, Bucket.DISPLAYING, Bucket.DONE)
            except OSError:
                logger.error("error moving %s from displaying to done", image.name, exc_info=True)
                continue
            logger.info("moved %s from displaying to done", image.name)

    def _serve_current(self) -> RotationResult:
        logger.debug("no new images pending, checking displaying")
        current = self._store.list_oldest(Bucket.DISPLAYING)
        if current is None:
            logger.info("displaying bucket is empty")
            return RotationResult.error(404, "No image available to display")

        try:
            content = self._store.read_bytes(current.name, Bucket.DISPLAYING)
        except OSError:
            logger.error("error reading %s from displaying", current.name, exc_info=True)
            return RotationResult.error(500, "Failed to read image from displaying directory")

        logger.debug("serving existing image %s", current.name)
        return RotationResult.image(content)
