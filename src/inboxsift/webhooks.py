"""Summary: Inbound email webhook adapter.

Importance: Turns verified provider callbacks into email-sourced inbox items.
Alternatives: Poll a mailbox over IMAP.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import re
from typing import Any, Mapping

from inboxsift.errors import InvalidSignatureError
from inboxsift.models import InboxItemSource
from inboxsift.services import InboxService
from inboxsift.storage.sqlite_store import SqliteStore, StoredInboxItem

logger = logging.getLogger(__name__)

_RECIPIENT_PATTERN = re.compile(r"^inbox\+([a-zA-Z0-9]+)@")


def verify_signature(secret: str, headers: Mapping[str, str], body: bytes) -> bool:
    """Summary: Verify a Svix-style webhook signature.

    Importance: Rejects forged inbound emails before they reach an inbox.
    Alternatives: Restrict the endpoint by source IP.
    """

    if not secret:
        return True
    normalized = {key.lower(): value for key, value in headers.items()}
    signature = normalized.get("svix-signature")
    timestamp = normalized.get("svix-timestamp")
    webhook_id = normalized.get("svix-id")
    if not signature or not timestamp or not webhook_id:
        return False
    key = base64.b64decode(secret.removeprefix("whsec_"))
    signed = f"{webhook_id}.{timestamp}.".encode("utf-8") + body
    expected = base64.b64encode(hmac.new(key, signed, hashlib.sha256).digest()).decode("ascii")
    for candidate in signature.split(" "):
        if candidate.startswith("v1,") and hmac.compare_digest(candidate[3:], expected):
            return True
    return False


def extract_workspace_token(payload: Mapping[str, Any]) -> str | None:
    """Summary: Read the workspace token from an inbox+{token}@domain recipient."""

    recipient = payload.get("to")
    if isinstance(recipient, list):
        recipient = recipient[0] if recipient else None
    if not isinstance(recipient, str):
        return None
    match = _RECIPIENT_PATTERN.match(recipient)
    return match.group(1) if match else None


def _text_field(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    return value if isinstance(value, str) else ""


def extract_content(payload: Mapping[str, Any]) -> str:
    """Summary: Prefer HTML content, falling back to plain text."""

    return _text_field(payload, "html") or _text_field(payload, "text")


def handle_inbound_email(
    store: SqliteStore,
    payload: Mapping[str, Any],
    headers: Mapping[str, str],
    body: bytes,
    secret: str,
) -> StoredInboxItem | None:
    """Summary: Verify an inbound email callback and file it as an inbox item.

    Importance: Unroutable emails are acknowledged and dropped so the provider stops retrying.
    Alternatives: Return an error status for unknown recipients.
    """

    if not verify_signature(secret, headers, body):
        logger.warning("Rejected inbound email webhook with invalid signature.")
        raise InvalidSignatureError("Invalid signature")
    token = extract_workspace_token(payload)
    if not token:
        logger.warning("Inbound email webhook has no workspace token (to=%s).", payload.get("to"))
        return None
    workspace = store.get_workspace_by_token(token)
    if not workspace:
        logger.warning("Inbound email webhook for unknown workspace token %s.", token)
        return None
    content = extract_content(payload)
    if not content.strip():
        logger.warning("Inbound email webhook for workspace %s has no content.", workspace.id)
        return None
    inbox = InboxService(store=store, workspace_id=workspace.id)
    return inbox.create_item(
        raw_content=content,
        raw_subject=_text_field(payload, "subject") or None,
        source=InboxItemSource.EMAIL,
    )
