from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from schoolhub.storage.kv import KeyValueStore
from schoolhub.storage.models import Message

MESSAGES_PREFIX = ("messages",)


class MessageStore:
    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv

    def create_message(
        self,
        sender: str,
        to: str,
        subject: str,
        body: str,
        *,
        now: Optional[datetime] = None,
    ) -> Message:
        stamp = now or datetime.now()
        message = Message(
            id=str(uuid.uuid4()),
            sender=sender,
            to=to,
            subject=subject,
            body=body,
            date=stamp.strftime("%Y-%m-%d"),
            time=stamp.strftime("%H:%M:%S"),
        )
        self.kv.set((*MESSAGES_PREFIX, message.id), message.to_record())
        return message

    def get_message(self, message_id: str) -> Optional[Message]:
        record = self.kv.get((*MESSAGES_PREFIX, message_id))
        return Message.from_record(record) if record else None

    def list_messages(self, recipient: Optional[str] = None) -> List[Message]:
        messages = [Message.from_record(record) for _, record in self.kv.list(MESSAGES_PREFIX)]
        if recipient is not None:
            messages = [m for m in messages if m.to == recipient]
        return messages

    def update_message(
        self,
        message_id: str,
        *,
        subject: Optional[str] = None,
        body: Optional[str] = None,
        read: Optional[bool] = None,
    ) -> Optional[Message]:
        message = self.get_message(message_id)
        if message is None:
            return None
        if subject is not None:
            message.subject = subject
        if body is not None:
            message.body = body
        if read is not None:
            message.read = read
        self.kv.set((*MESSAGES_PREFIX, message_id), message.to_record())
        return message

    def delete_message(self, message_id: str) -> bool:
        if self.kv.get((*MESSAGES_PREFIX, message_id)) is None:
            return False
        self.kv.delete((*MESSAGES_PREFIX, message_id))
        return True


__all__ = ["MessageStore"]
