"""
Scoped client session.

Created on sign-in (or app start with a stored token) and closed on
sign-out. Everything that polls is started through the session and torn
down with it; nothing lives in module globals.
"""

from typing import Awaitable, Callable, Dict, List, Optional

import httpx

from app.client.api import LinkUpClient
from app.client.conversation import ConversationView
from app.client.polling import CountersWatcher, Poller
from app.core.config import settings


class SessionContext:
    def __init__(
        self,
        base_url: str,
        token: str,
        user_id: str,
        poll_interval: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.user_id = user_id
        self.poll_interval = poll_interval if poll_interval is not None else settings.poll_interval_seconds
        self.client = LinkUpClient(base_url, token, transport=transport)
        self._pollers: List[Poller] = []
        self._conversations: Dict[str, ConversationView] = {}
        self._counters: Optional[CountersWatcher] = None
        self.closed = False

    async def __aenter__(self) -> "SessionContext":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def start_poller(
        self,
        callback: Callable[[], Awaitable[None]],
        interval: Optional[float] = None,
        should_skip: Optional[Callable[[], bool]] = None,
        name: str = "poller",
    ) -> Poller:
        poller = Poller(callback, interval or self.poll_interval, should_skip=should_skip, name=name)
        self._register(poller)
        return poller

    def watch_counters(self) -> CountersWatcher:
        if self._counters is None:
            self._counters = CountersWatcher(self.client, self.poll_interval)
            self._register(self._counters.poller)
        return self._counters

    def open_conversation(self, other_user_id: str) -> ConversationView:
        view = self._conversations.get(other_user_id)
        if view is None:
            view = ConversationView(self.client, self.user_id, other_user_id, self.poll_interval)
            self._conversations[other_user_id] = view
            self._register(view.poller)
        return view

    async def close_conversation(self, other_user_id: str) -> None:
        view = self._conversations.pop(other_user_id, None)
        if view is None:
            return
        await view.poller.stop()
        self._pollers.remove(view.poller)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for poller in self._pollers:
            await poller.stop()
        self._pollers.clear()
        self._conversations.clear()
        self._counters = None
        await self.client.aclose()

    def _register(self, poller: Poller) -> None:
        if self.closed:
            raise RuntimeError("Session is closed")
        self._pollers.append(poller)
        poller.start()
