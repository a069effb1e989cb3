"""
LINE webhook signature verification.

LINE signs the raw request body with HMAC-SHA256 keyed by the channel
secret and sends the base64 digest in the ``x-line-signature`` header.
Verification must happen on the unparsed bytes, before any JSON decoding.
"""

from __future__ import annotations

from linebot.v3.webhook import SignatureValidator

from .errors import InvalidSignatureError, MissingSignatureError


def verify_signature(channel_secret: str, body: bytes, signature: str | None) -> None:
    """
    Check ``signature`` against the body using the SDK's validator.

    Raises:
        MissingSignatureError: No signature header was supplied.
        InvalidSignatureError: The signature does not match the body.
    """
    if not signature:
        raise MissingSignatureError("missing x-line-signature header")

    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidSignatureError("request body is not UTF-8") from exc

    if not SignatureValidator(channel_secret).validate(text, signature):
        raise InvalidSignatureError("signature does not match request body")
