import pytest

from app.services import counters, gate, ledger


@pytest.fixture
async def people(make_profile):
    for user_id in ("alice", "bob", "carol"):
        await make_profile(user_id, user_id)


async def test_counters_start_at_zero(db, people):
    result = await counters.get_counters(db, "alice")

    assert result.unread_messages == 0
    assert result.pending_requests == 0


async def test_pending_requests_count_only_incoming(db, people):
    await ledger.send_request(db, "bob", "alice")
    await ledger.send_request(db, "carol", "alice")
    await ledger.send_request(db, "alice", "bob")

    assert await counters.pending_request_count(db, "alice") == 2
    assert await counters.pending_request_count(db, "bob") == 1
    assert await counters.pending_request_count(db, "carol") == 0


async def test_resolved_requests_leave_the_count(db, people):
    first = await ledger.send_request(db, "bob", "alice")
    second = await ledger.send_request(db, "carol", "alice")

    await ledger.accept(db, first.id)
    assert await counters.pending_request_count(db, "alice") == 1

    await ledger.decline(db, second.id)
    assert await counters.pending_request_count(db, "alice") == 0


async def test_unread_counts_span_conversations(db, people, connect):
    await connect("bob", "alice")
    await connect("carol", "alice")
    await gate.send_message(db, "bob", "alice", "hey")
    await gate.send_message(db, "carol", "alice", "hi")
    await gate.send_message(db, "carol", "alice", "there")

    assert (await counters.get_counters(db, "alice")).unread_messages == 3

    await gate.mark_read(db, "alice", "carol")

    assert (await counters.get_counters(db, "alice")).unread_messages == 1
