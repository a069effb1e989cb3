from __future__ import annotations

import logging

from linebot.v3.messaging import (
    ApiClient,
    Configuration,
    MessagingApi,
    MessagingApiBlob,
    ReplyMessageRequest,
    TextMessage,
)
from linebot.v3.messaging.exceptions import ApiException
from urllib3.exceptions import HTTPError

from .errors import LineApiError

logger = logging.getLogger(__name__)


class LineClient:
    """Thin wrapper over the LINE Messaging API used by the webhook.

    Only two calls are needed: fetching the bytes of an image message and
    replying with a text message. SDK and transport errors are re-raised as
    LineApiError.
    """

    def __init__(self, access_token: str) -> None:
        api_client = ApiClient(Configuration(access_token=access_token))
        self._messaging = MessagingApi(api_client)
        self._blob = MessagingApiBlob(api_client)

    def get_message_content(self, message_id: str) -> bytes:
        try:
            return bytes(self._blob.get_message_content(message_id))
        except ApiException as exc:
            raise LineApiError(
                f"failed to fetch content for message {message_id}",
                status=exc.status,
                body=exc.body,
            ) from exc
        except HTTPError as exc:
            raise LineApiError(f"network error fetching message {message_id}: {exc}") from exc

    def reply_text(self, reply_token: str, text: str) -> None:
        request = ReplyMessageRequest(reply_token=reply_token, messages=[TextMessage(text=text)])
        try:
            self._messaging.reply_message(request)
        except ApiException as exc:
            raise LineApiError("failed to send reply", status=exc.status, body=exc.body) from exc
        except HTTPError as exc:
            raise LineApiError(f"network error sending reply: {exc}") from exc
        logger.info("replied: %r", text)
