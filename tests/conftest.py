"""Pytest configuration and fixtures."""

from io import BytesIO

import pytest
from PIL import Image

from wedding_slide.errors import LineApiError
from wedding_slide.ingest import IngestHandler
from wedding_slide.storage import FileSystemPhotoStore, MemoryPhotoStore

CHANNEL_SECRET = "test_channel_secret"


def make_jpeg(color: str = "white") -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (8, 8), color).save(buffer, format="JPEG")
    return buffer.getvalue()


class FakeLineClient:
    """Records replies and serves canned message content."""

    def __init__(self, content: bytes) -> None:
        self.content = content
        self.failing_message_ids: set[str] = set()
        self.failing_reply_tokens: set[str] = set()
        self.fetched: list[str] = []
        self.replies: list[tuple[str, str]] = []

    def get_message_content(self, message_id: str) -> bytes:
        self.fetched.append(message_id)
        if message_id in self.failing_message_ids:
            raise LineApiError("content not found", status=404, body="{}")
        return self.content

    def reply_text(self, reply_token: str, text: str) -> None:
        if reply_token in self.failing_reply_tokens:
            raise LineApiError("invalid reply token", status=400, body="{}")
        self.replies.append((reply_token, text))


@pytest.fixture
def jpeg_bytes():
    return make_jpeg()


@pytest.fixture
def store():
    return MemoryPhotoStore()


@pytest.fixture
def fs_store(tmp_path):
    return FileSystemPhotoStore(tmp_path / "uploads")


@pytest.fixture
def line_client(jpeg_bytes):
    return FakeLineClient(jpeg_bytes)


@pytest.fixture
def ingest_handler(store, line_client):
    return IngestHandler(store, line_client, CHANNEL_SECRET)
