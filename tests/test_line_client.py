"""
LINE client tests

Drives the real LineClient with the SDK APIs replaced by mocks.
"""

from unittest.mock import MagicMock

import pytest
from linebot.v3.messaging.exceptions import ApiException
from urllib3.exceptions import MaxRetryError, ProtocolError

from conftest import CHANNEL_SECRET
from payloads import image_event, sign, text_event, webhook_body
from wedding_slide.config import REPLY_IMAGE_FAILED, REPLY_TEXT_INFO
from wedding_slide.errors import LineApiError
from wedding_slide.ingest import IngestHandler
from wedding_slide.line_client import LineClient


@pytest.fixture
def client():
    line = LineClient("test_access_token")
    line._blob = MagicMock()
    line._messaging = MagicMock()
    return line


def sent_replies(client):
    replies = []
    for call in client._messaging.reply_message.call_args_list:
        request = call.args[0]
        replies.append((request.reply_token, request.messages[0].text))
    return replies


class TestMessageContent:
    def test_returns_bytes(self, client):
        client._blob.get_message_content.return_value = bytearray(b"\xff\xd8jpeg")

        content = client.get_message_content("m1")

        assert content == b"\xff\xd8jpeg"
        assert isinstance(content, bytes)
        client._blob.get_message_content.assert_called_once_with("m1")

    def test_api_error_keeps_status(self, client):
        client._blob.get_message_content.side_effect = ApiException(status=404, reason="Not Found")

        with pytest.raises(LineApiError) as exc_info:
            client.get_message_content("m1")

        assert exc_info.value.status == 404

    @pytest.mark.parametrize(
        "error",
        [
            MaxRetryError(None, "/v2/bot/message/m1/content", reason=None),
            ProtocolError("Connection aborted."),
        ],
    )
    def test_network_errors_become_line_errors(self, client, error):
        client._blob.get_message_content.side_effect = error

        with pytest.raises(LineApiError) as exc_info:
            client.get_message_content("m1")

        assert exc_info.value.status is None


class TestReply:
    def test_builds_text_reply_request(self, client):
        client.reply_text("r1", "hello")

        assert sent_replies(client) == [("r1", "hello")]

    def test_api_error_keeps_status(self, client):
        client._messaging.reply_message.side_effect = ApiException(status=400, reason="Bad Request")

        with pytest.raises(LineApiError) as exc_info:
            client.reply_text("r1", "hello")

        assert exc_info.value.status == 400

    def test_network_error_becomes_line_error(self, client):
        client._messaging.reply_message.side_effect = ProtocolError("Connection reset by peer")

        with pytest.raises(LineApiError):
            client.reply_text("r1", "hello")


class TestWebhookWithUnreachableLine:
    def test_download_network_error_replies_failure_and_continues(self, client, store):
        client._blob.get_message_content.side_effect = MaxRetryError(None, "/content", reason=None)
        handler = IngestHandler(store, client, CHANNEL_SECRET)
        body = webhook_body(image_event("img-1", reply_token="r1"), text_event(reply_token="t2"))

        result = handler.handle(body, sign(CHANNEL_SECRET, body))

        assert result.status_code == 200
        assert store.snapshot() == []
        assert sent_replies(client) == [("r1", REPLY_IMAGE_FAILED), ("t2", REPLY_TEXT_INFO)]

    def test_reply_network_error_is_isolated_per_event(self, client, store):
        client._messaging.reply_message.side_effect = [ProtocolError("Connection aborted."), None]
        handler = IngestHandler(store, client, CHANNEL_SECRET)
        body = webhook_body(text_event(reply_token="t1"), text_event(reply_token="t2"))

        result = handler.handle(body, sign(CHANNEL_SECRET, body))

        assert result.status_code == 200
        assert client._messaging.reply_message.call_count == 2
