from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.core.errors import NotFoundError, PermissionError
from app.core.time import utcnow
from app.models import Connection, ConnectionRequest, Profile
from app.services import ledger, registry


@pytest.fixture
async def trio(make_profile):
    return [
        await make_profile("alice", "alice", city="Porto"),
        await make_profile("bob", "bob", interests=["Music", "Travel"]),
        await make_profile("carol", "carol"),
    ]


async def test_find_connection_is_symmetric(db, trio, connect):
    connection = await connect("alice", "bob")

    assert (await registry.find_connection(db, "alice", "bob")).id == connection.id
    assert (await registry.find_connection(db, "bob", "alice")).id == connection.id
    assert await registry.find_connection(db, "alice", "carol") is None


async def test_connection_stores_canonical_pair(db, trio, connect):
    connection = await connect("bob", "alice")

    assert connection.user1_id == "bob"
    assert connection.user2_id == "alice"
    assert (connection.user_low, connection.user_high) == ("alice", "bob")


async def test_list_connections_resolves_the_other_member(db, trio, connect):
    await connect("alice", "bob")

    alice_view = await registry.list_connections(db, "alice")
    bob_view = await registry.list_connections(db, "bob")

    assert [s.user_id for s in alice_view] == ["bob"]
    assert alice_view[0].username == "bob"
    assert alice_view[0].interests == ["Music", "Travel"]
    assert [s.user_id for s in bob_view] == ["alice"]
    assert bob_view[0].city == "Porto"
    assert alice_view[0].connection_id == bob_view[0].connection_id


async def test_list_connections_newest_first(db, trio, connect):
    older = await connect("alice", "bob")
    newer = await connect("carol", "alice")
    older.created_at = utcnow() - timedelta(days=1)
    await db.commit()

    summaries = await registry.list_connections(db, "alice")

    assert [s.connection_id for s in summaries] == [newer.id, older.id]


async def test_list_connections_skips_unresolvable_profiles(db, trio, connect, monkeypatch):
    await connect("alice", "bob")
    await connect("alice", "carol")

    real_get = db.get

    async def flaky_get(entity, ident, **kwargs):
        if entity is Profile and ident == "carol":
            raise OperationalError("SELECT profiles", {}, Exception("connection reset"))
        return await real_get(entity, ident, **kwargs)

    monkeypatch.setattr(db, "get", flaky_get)

    summaries = await registry.list_connections(db, "alice")

    assert [s.user_id for s in summaries] == ["bob"]


async def test_list_connections_empty(db, trio):
    assert await registry.list_connections(db, "alice") == []


async def test_disconnect_removes_link_and_accepted_requests(db, trio, connect):
    connection = await connect("alice", "bob")

    await registry.disconnect(db, connection.id, acting_user_id="bob")

    assert await registry.find_connection(db, "alice", "bob") is None
    remaining = (
        await db.execute(select(func.count()).select_from(ConnectionRequest))
    ).scalar_one()
    assert remaining == 0
    assert await registry.list_connections(db, "alice") == []


async def test_disconnected_pair_can_reconnect(db, trio, connect):
    connection = await connect("alice", "bob")
    await registry.disconnect(db, connection.id)
    db.expunge_all()

    again = await ledger.send_request(db, "bob", "alice")
    assert again.status == "pending"
    assert await ledger.reconcile_accepted(db) == 0
    assert await registry.find_connection(db, "alice", "bob") is None


async def test_disconnect_unknown_connection(db, trio):
    with pytest.raises(NotFoundError) as exc_info:
        await registry.disconnect(db, "missing")
    assert exc_info.value.code == "CONNECTION_NOT_FOUND"


async def test_disconnect_requires_membership(db, trio, connect):
    connection = await connect("alice", "bob")

    with pytest.raises(PermissionError):
        await registry.disconnect(db, connection.id, acting_user_id="carol")

    count = (await db.execute(select(func.count()).select_from(Connection))).scalar_one()
    assert count == 1
