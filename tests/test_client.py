import asyncio

import pytest

from app.client.api import ApiError, LinkUpClient
from app.client.conversation import ConversationView, PendingMessage
from app.client.polling import CountersWatcher, Poller
from app.client.session import SessionContext
from app.core.time import utcnow
from app.schemas.message import DirectMessageResponse
from tests.conftest import auth_headers

BASE_URL = "http://test"


def _token(user_id: str) -> str:
    return auth_headers(user_id)["Authorization"].split(" ", 1)[1]


@pytest.fixture
async def api_clients(transport, make_profile):
    await make_profile("alice", "alice")
    await make_profile("bob", "bob")
    alice = LinkUpClient(BASE_URL, _token("alice"), transport=transport)
    bob = LinkUpClient(BASE_URL, _token("bob"), transport=transport)
    yield alice, bob
    await alice.aclose()
    await bob.aclose()


class TestLinkUpClient:
    async def test_connect_and_message(self, api_clients):
        alice, bob = api_clients

        request = await alice.send_request("bob")
        assert [r.id for r in await bob.list_incoming()] == [request.id]

        connection = await bob.accept(request.id)
        assert {connection.user1_id, connection.user2_id} == {"alice", "bob"}
        assert [c.username for c in await alice.list_connections()] == ["bob"]

        sent = await alice.send_message("bob", "hello")
        assert isinstance(sent, DirectMessageResponse)
        assert (await bob.get_counters()).unread_messages == 1

        history = await bob.get_conversation("alice")
        assert [m.content for m in history] == ["hello"]
        assert (await bob.get_counters()).unread_messages == 0

    async def test_errors_carry_server_codes(self, api_clients):
        alice, bob = api_clients

        with pytest.raises(ApiError) as exc_info:
            await alice.send_message("bob", "hi")
        assert exc_info.value.status_code == 403
        assert exc_info.value.code == "NOT_CONNECTED"

        request = await alice.send_request("bob")
        await bob.decline(request.id)
        with pytest.raises(ApiError) as exc_info:
            await bob.decline(request.id)
        assert exc_info.value.code == "REQUEST_NOT_FOUND"

    async def test_profile_calls(self, api_clients):
        alice, _ = api_clients

        assert (await alice.get_my_profile()).username == "alice"
        assert await alice.is_username_available("brand_new") is True
        assert [p.id for p in await alice.list_profiles()] == ["bob"]
        updated = await alice.update_profile(bio="Updated bio")
        assert updated.bio == "Updated bio"


class FakeClient:
    """Stands in for LinkUpClient in view tests"""

    def __init__(self):
        self.history = []
        self.release = asyncio.Event()
        self.fail_with = None
        self.sent = []
        self.read_gate = None

    async def get_conversation(self, other_user_id):
        snapshot = list(self.history)
        if self.read_gate is not None:
            await self.read_gate.wait()
        return snapshot

    async def send_message(self, other_user_id, content="", media_url=None, media_type=None):
        await self.release.wait()
        if self.fail_with is not None:
            raise self.fail_with
        message = DirectMessageResponse(
            id=f"msg_{len(self.history) + 1}",
            sender_id="alice",
            receiver_id=other_user_id,
            seq=len(self.history) + 1,
            content=content,
            media_url=media_url,
            media_type=media_type,
            read=False,
            created_at=utcnow(),
        )
        self.history.append(message)
        return message


class TestConversationView:
    async def test_send_is_shown_optimistically_then_confirmed(self):
        fake = FakeClient()
        view = ConversationView(fake, "alice", "bob", interval=60)

        task = asyncio.create_task(view.send("hello"))
        await asyncio.sleep(0)

        assert view.sending is True
        assert [type(m) for m in view.messages] == [PendingMessage]
        assert view.messages[0].content == "hello"

        fake.release.set()
        message = await task

        assert view.sending is False
        assert view.pending == []
        assert [m.id for m in view.messages] == [message.id]

    async def test_failed_send_is_retracted(self):
        fake = FakeClient()
        fake.fail_with = ApiError(403, "NOT_CONNECTED", "Users are not connected")
        fake.release.set()
        view = ConversationView(fake, "alice", "bob", interval=60)

        with pytest.raises(ApiError):
            await view.send("hello")

        assert view.messages == []
        assert view.sending is False

    async def test_poll_is_skipped_while_sending(self):
        fake = FakeClient()
        view = ConversationView(fake, "alice", "bob", interval=60)

        task = asyncio.create_task(view.send("hello"))
        await asyncio.sleep(0)

        assert await view.poller.poll_now() is False
        assert view.poller.skipped == 1

        fake.release.set()
        await task
        assert await view.poller.poll_now() is True
        assert len(view.messages) == 1

    async def test_slow_poll_does_not_hide_a_confirmed_send(self):
        fake = FakeClient()
        fake.release.set()
        fake.read_gate = asyncio.Event()
        view = ConversationView(fake, "alice", "bob", interval=60)

        # The read takes its snapshot before the send lands
        poll = asyncio.create_task(view.poller.poll_now())
        await asyncio.sleep(0)
        await view.send("hello")
        assert [m.content for m in view.messages] == ["hello"]

        fake.read_gate.set()
        assert await poll is True

        assert [m.content for m in view.messages] == ["hello"]
        assert view.pending == []

        # A later round sees the message through the server snapshot
        assert await view.poller.poll_now() is True
        assert [m.content for m in view.messages] == ["hello"]


class TestPoller:
    async def test_failures_are_counted_and_loop_continues(self):
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("network down")

        poller = Poller(flaky, interval=0.01, name="flaky")
        poller.start()
        await asyncio.sleep(0.1)
        await poller.stop()

        assert poller.failures == 1
        assert poller.rounds >= 1
        assert poller.running is False

    async def test_stop_is_idempotent(self):
        async def noop():
            pass

        poller = Poller(noop, interval=0.01)
        await poller.stop()
        poller.start()
        await poller.stop()
        await poller.stop()
        assert poller.running is False

    async def test_counters_watcher_keeps_latest(self, api_clients):
        alice, bob = api_clients
        await alice.send_request("bob")

        watcher = CountersWatcher(bob, interval=60)
        await watcher.poller.poll_now()

        assert watcher.latest.pending_requests == 1


class TestSessionContext:
    async def test_close_stops_every_poller(self, transport, make_profile):
        await make_profile("alice", "alice")

        async with SessionContext(BASE_URL, _token("alice"), "alice", poll_interval=0.01, transport=transport) as session:
            watcher = session.watch_counters()
            view = session.open_conversation("bob")
            assert session.open_conversation("bob") is view
            await asyncio.sleep(0.2)
            assert watcher.latest is not None

        assert session.closed is True
        assert watcher.poller.running is False
        assert view.poller.running is False
        with pytest.raises(RuntimeError):
            session.watch_counters()

    async def test_close_conversation(self, transport, make_profile):
        await make_profile("alice", "alice")
        session = SessionContext(BASE_URL, _token("alice"), "alice", poll_interval=60, transport=transport)
        view = session.open_conversation("bob")

        await session.close_conversation("bob")

        assert view.poller.running is False
        assert session.open_conversation("bob") is not view
        await session.close()
