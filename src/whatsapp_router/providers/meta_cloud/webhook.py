"""
Meta Webhook Utilities

Signature validation, subscription verification and parsing of Meta Cloud
API webhook payloads into provider-agnostic events.
"""

import hashlib
import hmac
import logging
from typing import Any

from whatsapp_router.providers.base import (
    InboundMessage,
    InboundType,
    MediaDescriptor,
    StatusUpdate,
    WebhookBatch,
)

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="

MESSAGE_TYPE_MAP: dict[str, InboundType] = {
    "text": InboundType.TEXT,
    "image": InboundType.IMAGE,
    "video": InboundType.VIDEO,
    "audio": InboundType.AUDIO,
    "sticker": InboundType.STICKER,
    "document": InboundType.DOCUMENT,
    "location": InboundType.LOCATION,
    "reaction": InboundType.REACTION,
}


def validate_signature(
    payload: bytes,
    signature_header: str | None,
    app_secret: str,
) -> bool:
    """
    Validate Meta webhook signature.

    Args:
        payload: Raw request body bytes
        signature_header: X-Hub-Signature-256 header value
        app_secret: Facebook App Secret

    Returns:
        True if signature is valid
    """
    if not signature_header:
        logger.warning("Missing signature header")
        return False

    if not signature_header.startswith(SIGNATURE_PREFIX):
        logger.warning("Invalid signature format")
        return False

    expected = signature_header[len(SIGNATURE_PREFIX):]

    computed = hmac.new(
        app_secret.encode("utf-8"),
        payload,
        hashlib.sha256,
    ).hexdigest()

    is_valid = hmac.compare_digest(computed, expected)
    if not is_valid:
        logger.warning("Webhook signature validation failed")
    return is_valid


def verify_webhook(
    mode: str | None,
    token: str | None,
    verify_token: str | None,
) -> bool:
    """
    Check a webhook subscription request.

    Accepted only when a verify token is configured, the mode is
    "subscribe" and the presented token matches.
    """
    if not verify_token:
        return False
    if mode == "subscribe" and token is not None and hmac.compare_digest(token, verify_token):
        logger.info("Webhook verification successful")
        return True

    logger.warning(f"Webhook verification failed: mode={mode}, token mismatch")
    return False


def map_message_type(type_str: str | None) -> InboundType:
    """Map Meta message type string to InboundType; unknown -> UNSUPPORTED."""
    return MESSAGE_TYPE_MAP.get(type_str or "", InboundType.UNSUPPORTED)


def extract_value(payload: Any) -> dict[str, Any] | None:
    """
    Return entry[0].changes[0].value, or None when the payload does not
    have that shape.
    """
    if not isinstance(payload, dict):
        return None
    entries = payload.get("entry")
    if not isinstance(entries, list) or not entries or not isinstance(entries[0], dict):
        return None
    changes = entries[0].get("changes")
    if not isinstance(changes, list) or not changes or not isinstance(changes[0], dict):
        return None
    value = changes[0].get("value")
    if not isinstance(value, dict):
        return None
    return value


def parse_webhook(payload: Any) -> WebhookBatch | None:
    """
    Parse a Meta webhook payload into messages and status updates.

    Webhook format (subset):
    {
        "object": "whatsapp_business_account",
        "entry": [{
            "changes": [{
                "value": {
                    "contacts": [...],
                    "messages": [...],
                    "statuses": [...]
                },
                "field": "messages"
            }]
        }]
    }

    Returns None when the nested value object is missing.
    """
    value = extract_value(payload)
    if value is None:
        logger.debug("Ignoring webhook without entry[0].changes[0].value")
        return None

    contacts = [c for c in value.get("contacts") or [] if isinstance(c, dict)]
    batch = WebhookBatch()

    for msg_data in value.get("messages") or []:
        if isinstance(msg_data, dict):
            batch.messages.append(_parse_message(msg_data, contacts))

    for status_data in value.get("statuses") or []:
        if isinstance(status_data, dict):
            batch.statuses.append(_parse_status(status_data))

    return batch


def _profile_name(contacts: list[dict[str, Any]], from_phone: str) -> str | None:
    """Profile name of the sender, falling back to the first contact."""
    contact = next((c for c in contacts if c.get("wa_id") == from_phone), None)
    if contact is None and contacts:
        contact = contacts[0]
    if contact is None:
        return None
    return _as_dict(contact.get("profile")).get("name")


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _parse_timestamp(raw: Any) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 0


def _parse_message(msg_data: dict[str, Any], contacts: list[dict[str, Any]]) -> InboundMessage:
    """Parse a single message from webhook."""
    raw_type = msg_data.get("type")
    if not isinstance(raw_type, str):
        raw_type = ""
    msg_type = map_message_type(raw_type)
    from_phone = str(msg_data.get("from", ""))

    message = InboundMessage(
        message_id=str(msg_data.get("id", "")),
        from_phone=from_phone,
        message_type=msg_type,
        timestamp=_parse_timestamp(msg_data.get("timestamp")),
        profile_name=_profile_name(contacts, from_phone),
        context_message_id=_as_dict(msg_data.get("context")).get("id"),
        raw_type=raw_type,
        raw_payload=msg_data,
    )

    body = msg_data.get(raw_type)
    if not isinstance(body, dict):
        # A known type without its object is kept as unsupported
        if msg_type != InboundType.UNSUPPORTED:
            logger.warning(f"Message {message.message_id} has no {raw_type} object")
            message.message_type = InboundType.UNSUPPORTED
        return message

    if msg_type == InboundType.TEXT:
        text = body.get("body")
        message.text = text if isinstance(text, str) else None

    elif msg_type.is_media:
        message.media = MediaDescriptor(
            media_id=body.get("id", ""),
            mime_type=str(body.get("mime_type") or "application/octet-stream"),
            caption=body.get("caption"),
            filename=body.get("filename"),
            is_voice=body.get("voice"),
            is_animated=body.get("animated"),
        )

    elif msg_type == InboundType.LOCATION:
        message.latitude = body.get("latitude")
        message.longitude = body.get("longitude")

    elif msg_type == InboundType.REACTION:
        message.reaction_emoji = body.get("emoji")
        message.reaction_message_id = body.get("message_id")

    return message


def _parse_status(status_data: dict[str, Any]) -> StatusUpdate:
    """Parse a single status update from webhook."""
    return StatusUpdate(
        message_id=str(status_data.get("id", "")),
        status=str(status_data.get("status", "")),
        timestamp=_parse_timestamp(status_data.get("timestamp")),
        recipient_phone=status_data.get("recipient_id"),
        raw_payload=status_data,
    )
