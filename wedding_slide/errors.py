from __future__ import annotations


class PhotoSlideError(Exception):
    """Base class for errors raised by the slideshow service."""


class SignatureError(PhotoSlideError):
    """Webhook signature verification failed."""


class MissingSignatureError(SignatureError):
    pass


class InvalidSignatureError(SignatureError):
    pass


class PayloadError(PhotoSlideError):
    """Webhook body could not be parsed."""


class LineApiError(PhotoSlideError):
    """A call to the LINE Messaging API failed."""

    def __init__(self, message: str, status: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class InvalidImageError(PhotoSlideError):
    """Downloaded content is not a readable image."""


class InvalidTransition(PhotoSlideError):
    """A stored image was asked to move between buckets out of order."""


class DisplayInvariantError(PhotoSlideError):
    """More than one image occupies the displaying bucket."""


class RotationError(PhotoSlideError):
    """The selected candidate could not be promoted to displaying."""
