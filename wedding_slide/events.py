"""
LINE webhook payload models.

Only the fields the slideshow uses are declared; everything else LINE sends
is ignored.

Example payload:
{
    "destination": "U...",
    "events": [
        {
            "type": "message",
            "replyToken": "b60d432864f44d079f6d8efe86cf404b",
            "source": {"type": "user", "userId": "U91eeaf62d..."},
            "message": {
                "id": "354718705033693861",
                "type": "image",
                "imageSet": {"id": "E005D41A7288F41B6...", "index": 2, "total": 3}
            }
        }
    ]
}
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .config import MAX_IMAGES_PER_SET

ChatEventKind = Literal["text", "image", "other"]


class _LineModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ImageSet(_LineModel):
    id: str
    index: int = 1
    total: int = 1


class EventSource(_LineModel):
    type: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")
    group_id: Optional[str] = Field(default=None, alias="groupId")
    room_id: Optional[str] = Field(default=None, alias="roomId")

    @property
    def identifier(self) -> Optional[str]:
        return self.user_id or self.group_id or self.room_id


class Message(_LineModel):
    id: str
    type: str
    text: Optional[str] = None
    image_set: Optional[ImageSet] = Field(default=None, alias="imageSet")


class WebhookEvent(_LineModel):
    type: str
    reply_token: Optional[str] = Field(default=None, alias="replyToken")
    source: Optional[EventSource] = None
    message: Optional[Message] = None

    @property
    def kind(self) -> ChatEventKind:
        message_type = self.message.type if self.message else None
        if message_type in ("text", "image"):
            return message_type
        return "other"

    @property
    def source_id(self) -> Optional[str]:
        return self.source.identifier if self.source else None

    @property
    def is_replyable_message(self) -> bool:
        return self.type == "message" and bool(self.reply_token) and self.message is not None

    @property
    def image_position(self) -> tuple[int, int]:
        """(index, total) within an image set; standalone images are (1, 1)."""
        if self.message is None or self.message.image_set is None:
            return 1, 1
        return self.message.image_set.index, self.message.image_set.total

    @property
    def should_store_image(self) -> bool:
        index, _ = self.image_position
        return index <= MAX_IMAGES_PER_SET

    @property
    def is_last_processed_image(self) -> bool:
        index, total = self.image_position
        return index == min(total, MAX_IMAGES_PER_SET)


class WebhookBody(_LineModel):
    destination: Optional[str] = None
    events: Optional[List[WebhookEvent]] = None
