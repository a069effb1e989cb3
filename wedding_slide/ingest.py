from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

from pydantic import ValidationError

from .config import (
    MAX_IMAGES_PER_SET,
    REPLY_IMAGE_FAILED,
    REPLY_IMAGE_SAVED,
    REPLY_TEXT_INFO,
    REPLY_UNSUPPORTED,
)
from .errors import (
    InvalidImageError,
    InvalidSignatureError,
    LineApiError,
    MissingSignatureError,
    PayloadError,
)
from .events import WebhookBody, WebhookEvent
from .image_ops import ensure_image
from .security import verify_signature
from .storage import Bucket, PhotoStore, StoredImage, generate_image_name

logger = logging.getLogger(__name__)


class MessagingClient(Protocol):
    def get_message_content(self, message_id: str) -> bytes: ...

    def reply_text(self, reply_token: str, text: str) -> None: ...


@dataclass
class IngestResult:
    status_code: int
    payload: dict[str, Any] = field(default_factory=dict)


def parse_webhook_body(raw_body: bytes) -> WebhookBody:
    try:
        payload = json.loads(raw_body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise PayloadError(f"invalid JSON: {exc}") from exc

    try:
        return WebhookBody.model_validate(payload)
    except ValidationError as exc:
        raise PayloadError(f"unexpected webhook payload: {exc.error_count()} errors") from exc


class IngestHandler:
    """Handles one LINE webhook call: verify, parse, then dispatch each event."""

    def __init__(self, store: PhotoStore, line_client: MessagingClient, channel_secret: str) -> None:
        self._store = store
        self._line = line_client
        self._channel_secret = channel_secret

    def handle(self, raw_body: bytes, signature: str | None) -> IngestResult:
        try:
            verify_signature(self._channel_secret, raw_body, signature)
        except MissingSignatureError:
            logger.error("webhook request has no signature")
            return IngestResult(400, {"message": "Bad Request: missing signature"})
        except InvalidSignatureError:
            logger.error("webhook signature is invalid")
            return IngestResult(401, {"message": "Unauthorized: invalid signature"})

        try:
            body = parse_webhook_body(raw_body)
        except PayloadError as exc:
            logger.error("failed to parse webhook body: %s", exc)
            return IngestResult(400, {"message": "Bad Request: invalid JSON"})

        if not body.events:
            logger.info("no events found in webhook payload")
            return IngestResult(200, {"success": True, "message": "No events to process"})

        try:
            failures = self._dispatch_all(body.events)
        except Exception:
            logger.exception("unexpected error while processing webhook events")
            return IngestResult(500, {"message": "Internal Server Error"})

        if failures:
            logger.error("%d of %d webhook events failed", failures, len(body.events))
        return IngestResult(200, {"success": True})

    def _dispatch_all(self, events: Sequence[WebhookEvent]) -> int:
        failures = 0
        for event in events:
            if not event.is_replyable_message:
                logger.debug("skipping %s event without reply token", event.type)
                continue
            try:
                self.dispatch(event)
            except LineApiError as exc:
                failures += 1
                logger.error(
                    "LINE API error for event from %s: %s (status=%s, body=%s)",
                    event.source_id,
                    exc,
                    exc.status,
                    exc.body,
                )
        return failures

    def dispatch(self, event: WebhookEvent) -> None:
        logger.info("processing %s message from %s", event.message.type, event.source_id)

        if event.kind == "text":
            self._line.reply_text(event.reply_token, REPLY_TEXT_INFO)
        elif event.kind == "image":
            self._handle_image(event)
        else:
            logger.info("unsupported message type: %s", event.message.type)
            self._line.reply_text(event.reply_token, REPLY_UNSUPPORTED)

    def _handle_image(self, event: WebhookEvent) -> None:
        message = event.message
        index, total = event.image_position
        if message.image_set is not None:
            logger.info("image %d/%d of set %s", index, total, message.image_set.id)

        if not event.should_store_image:
            logger.info(
                "skipping image %d of set %s: only the first %d are kept",
                index,
                message.image_set.id,
                MAX_IMAGES_PER_SET,
            )
            return

        saved = self.save_image(message.id)

        if event.is_last_processed_image:
            if saved is None:
                logger.error("last image %s of the batch could not be saved", message.id)
                self._line.reply_text(event.reply_token, REPLY_IMAGE_FAILED)
            else:
                self._line.reply_text(event.reply_token, REPLY_IMAGE_SAVED)
        elif saved is None:
            logger.error("image %s (%d/%d) could not be saved; reply deferred", message.id, index, total)

    def save_image(self, message_id: str) -> StoredImage | None:
        """Download a message's content into the pending bucket.

        Returns None on any download, validation or write failure.
        """
        try:
            content = self._line.get_message_content(message_id)
            ensure_image(content)
            stored = self._store.write_atomic(generate_image_name(), Bucket.PENDING, content)
        except LineApiError as exc:
            logger.error("LINE API error fetching %s: %s (status=%s)", message_id, exc, exc.status)
            return None
        except (InvalidImageError, OSError) as exc:
            logger.error("failed to save image %s: %s", message_id, exc)
            return None

        logger.info("saved image %s as %s", message_id, stored.name)
        return stored
