"""
Message service.

Direct messages go to one member, channel messages to a project channel
(``channel_id`` is the project id), system messages to nobody in
particular. Only direct messages carry a meaningful read flag.
"""

from __future__ import annotations

import logging

from workhub.core.exceptions import ValidationError
from workhub.models.entities import Message, MessageType
from workhub.services.auth_service import UserContext
from workhub.services.entity_store import EntityStore

logger = logging.getLogger(__name__)

_MESSAGE_TYPES = {t.value for t in MessageType}


class MessageService:
    def __init__(self, store: EntityStore[Message], users: UserContext) -> None:
        self.store = store
        self.users = users

    # ── Commands ──────────────────────────────────────────────────────────

    def send_message(self, payload: dict) -> Message:
        """
        Validate and store a message. Sender defaults to the current user.

        Raises:
            ValidationError: missing content, unknown type, direct message
                without receiver, channel message without channel.
        """
        data = dict(payload)
        errors = {}

        msg_type = data.get("type") or MessageType.DIRECT.value
        if msg_type not in _MESSAGE_TYPES:
            errors["type"] = f"must be one of {sorted(_MESSAGE_TYPES)}"
        if not str(data.get("content") or "").strip():
            errors["content"] = "required"
        if msg_type == MessageType.DIRECT.value and not data.get("receiver_id"):
            errors["receiver_id"] = "required for direct messages"
        if msg_type == MessageType.CHANNEL.value and not data.get("channel_id"):
            errors["channel_id"] = "required for channel messages"
        if errors:
            raise ValidationError("Invalid message", details=errors)

        if not data.get("sender_id"):
            actor = self.users.current
            data["sender_id"] = actor.id
            data["sender_name"] = actor.name
        data["type"] = msg_type
        data["is_read"] = False
        if msg_type != MessageType.DIRECT.value:
            data["receiver_id"] = None
            data["receiver_name"] = None

        message = self.store.build(data)
        self.store.insert(message)
        logger.info("Message %s sent (%s)", message.id, msg_type,
                    extra={"store": self.store.name, "entity_id": message.id, "actor": message.sender_id})
        return message

    def send_direct(self, *, receiver_id: str, receiver_name: str, content: str,
                    metadata: dict | None = None, sender=None) -> Message:
        sender = sender or self.users.current
        return self.send_message({
            "type": MessageType.DIRECT.value,
            "sender_id": sender.id,
            "sender_name": sender.name,
            "receiver_id": receiver_id,
            "receiver_name": receiver_name,
            "content": content,
            "metadata": dict(metadata or {}),
        })

    def mark_as_read(self, message_id: str) -> Message | None:
        return self.store.update(message_id, {"is_read": True})

    def mark_all_read(self, receiver_id: str) -> int:
        count = sum(1 for m in self.store.list() if m.receiver_id == receiver_id and not m.is_read)
        if count:
            self.store.update_where(
                lambda m: m.receiver_id == receiver_id and not m.is_read,
                lambda _m: {"is_read": True},
            )
        return count

    def delete_message(self, message_id: str) -> bool:
        return self.store.delete(message_id)

    # ── Queries ───────────────────────────────────────────────────────────

    def list_messages(self) -> list[Message]:
        return self.store.list()

    def inbox(self, member_id: str) -> list[Message]:
        return self.store.find(lambda m: m.type == MessageType.DIRECT.value and m.receiver_id == member_id)

    def sent(self, member_id: str) -> list[Message]:
        return self.store.find(lambda m: m.sender_id == member_id)

    def channel_messages(self, channel_id: str) -> list[Message]:
        """Channel history, oldest first."""
        rows = self.store.find(lambda m: m.type == MessageType.CHANNEL.value and m.channel_id == channel_id)
        return sorted(rows, key=lambda m: m.created_at)
