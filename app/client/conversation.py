"""
Local view of one conversation with an optimistic send overlay.

Sent messages appear immediately as PendingMessage entries. A confirmed
send swaps the entry for the persisted message; a failed send retracts it
and re-raises, so the caller can surface the error.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Union
from uuid import uuid4

from app.client.api import LinkUpClient
from app.client.polling import Poller
from app.core.time import utcnow
from app.schemas.message import DirectMessageResponse


@dataclass
class PendingMessage:
    sender_id: str
    receiver_id: str
    content: str
    media_url: Optional[str] = None
    media_type: Optional[str] = None
    local_id: str = field(default_factory=lambda: f"local_{uuid4().hex[:12]}")
    created_at: datetime = field(default_factory=utcnow)


ConversationEntry = Union[DirectMessageResponse, PendingMessage]


class ConversationView:
    def __init__(self, client: LinkUpClient, user_id: str, other_user_id: str, interval: float):
        self.client = client
        self.user_id = user_id
        self.other_user_id = other_user_id
        self._confirmed: List[DirectMessageResponse] = []
        self._overlay: List[PendingMessage] = []
        self._in_flight = 0
        # Bumped each time a send is confirmed
        self._send_generation = 0
        # Skip a round while a send is in flight so a stale read does not
        # overwrite the optimistic entry
        self.poller = Poller(
            self.refresh,
            interval,
            should_skip=lambda: self.sending,
            name=f"conversation:{other_user_id}",
        )

    @property
    def sending(self) -> bool:
        return self._in_flight > 0

    @property
    def pending(self) -> List[PendingMessage]:
        return list(self._overlay)

    @property
    def messages(self) -> List[ConversationEntry]:
        return [*self._confirmed, *self._overlay]

    async def refresh(self) -> None:
        generation = self._send_generation
        messages = await self.client.get_conversation(self.other_user_id)
        if generation != self._send_generation:
            # A send was confirmed while this read was in flight; the snapshot
            # may predate it, so keep confirmed messages it does not carry
            known = {m.id for m in messages}
            messages = sorted(
                [*messages, *(m for m in self._confirmed if m.id not in known)],
                key=lambda m: m.seq,
            )
        self._confirmed = messages

    async def send(
        self,
        content: str = "",
        media_url: Optional[str] = None,
        media_type: Optional[str] = None,
    ) -> DirectMessageResponse:
        entry = PendingMessage(
            sender_id=self.user_id,
            receiver_id=self.other_user_id,
            content=content,
            media_url=media_url,
            media_type=media_type,
        )
        self._overlay.append(entry)
        self._in_flight += 1
        try:
            message = await self.client.send_message(
                self.other_user_id, content, media_url=media_url, media_type=media_type
            )
        except Exception:
            self._overlay.remove(entry)
            raise
        finally:
            self._in_flight -= 1

        self._overlay.remove(entry)
        if all(m.id != message.id for m in self._confirmed):
            self._confirmed.append(message)
        self._send_generation += 1
        return message
