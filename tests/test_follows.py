from __future__ import annotations

import uuid

import pytest
from sqlalchemy import func, select, update

from conftest import API, load_user, make_user, register, run
from vidsphere.core.exceptions import InvalidOperation
from vidsphere.db.session import async_session_maker
from vidsphere.models.engagement import Follow
from vidsphere.models.user import User
from vidsphere.services.cache_service import CacheAccelerator
from vidsphere.services import follow_service
from vidsphere.services.follow_service import toggle_follow
from vidsphere.workers.reconciliation import reconcile_all


def _follow(client, user, target_id):
    return client.post(f"{API}/engagement/follow/{target_id}", headers=user["headers"])


def _stats(client, user_id):
    res = client.get(f"{API}/users/{user_id}")
    assert res.status_code == 200
    return res.json()["stats"]


def test_follow_unfollow_round_trip(client):
    alice = register(client, "alice")
    bob = register(client, "bob")

    res = _follow(client, alice, bob["id"])
    assert res.status_code == 201
    body = res.json()
    assert body["status"] == "followed"
    assert body["follow"]["follower_id"] == alice["id"]
    assert body["follow"]["following_id"] == bob["id"]
    assert body["follow"]["status"] == "active"
    assert _stats(client, bob["id"])["followers"] == 1
    assert _stats(client, alice["id"])["following"] == 1

    res = _follow(client, alice, bob["id"])
    assert res.status_code == 200
    assert res.json() == {"status": "unfollowed", "follow": None}
    assert _stats(client, bob["id"]) == {"followers": 0, "following": 0, "total_views": 0, "total_likes": 0}
    assert _stats(client, alice["id"])["following"] == 0


def test_self_follow_is_rejected(client):
    alice = register(client, "alice")

    res = _follow(client, alice, alice["id"])

    assert res.status_code == 400
    assert res.json() == {"detail": "Users cannot follow themselves", "error": "invalid_operation"}
    assert _stats(client, alice["id"])["following"] == 0


def test_self_follow_rejected_in_service(bus):
    async def scenario():
        user = await make_user("loner")
        async with async_session_maker() as db:
            with pytest.raises(InvalidOperation):
                await toggle_follow(db, follower_id=user.id, target_user_id=user.id, bus=bus, cache=CacheAccelerator())
            return await db.scalar(select(func.count()).select_from(Follow))

    assert run(scenario()) == 0
    assert bus.events == []


def test_follow_unknown_user_is_not_found(client):
    alice = register(client, "alice")
    res = _follow(client, alice, uuid.uuid4())
    assert res.status_code == 404
    assert res.json()["detail"] == "Target user not found"


def test_counters_match_sequential_follows(client):
    star = register(client, "star")
    fans = [register(client, f"fan_{i}") for i in range(3)]
    for fan in fans:
        assert _follow(client, fan, star["id"]).status_code == 201
    _follow(client, fans[0], star["id"])  # unfollow again

    star_row = run(load_user(uuid.UUID(star["id"])))
    assert star_row.followers_count == 2
    assert [run(load_user(uuid.UUID(f["id"]))).following_count for f in fans] == [0, 1, 1]


def test_followers_and_following_lists(client):
    star = register(client, "star")
    ana = register(client, "ana")
    ben = register(client, "ben")
    _follow(client, ana, star["id"])
    _follow(client, ben, star["id"])
    _follow(client, ana, ben["id"])

    followers = client.get(f"{API}/engagement/followers/{star['id']}", params={"limit": 1}).json()
    assert followers["pagination"] == {"current": 1, "pages": 2, "total": 2}
    assert [u["username"] for u in followers["followers"]] == ["ben"]

    following = client.get(f"{API}/engagement/following/{ana['id']}").json()
    assert {u["username"] for u in following["following"]} == {"star", "ben"}
    assert following["pagination"]["total"] == 2


def test_follow_event_goes_to_target_channel(bus):
    async def scenario():
        alice = await make_user("alice")
        bob = await make_user("bob")
        async with async_session_maker() as db:
            await toggle_follow(db, follower_id=alice.id, target_user_id=bob.id, bus=bus, cache=CacheAccelerator())
            await toggle_follow(db, follower_id=alice.id, target_user_id=bob.id, bus=bus, cache=CacheAccelerator())
        return alice, bob

    alice, bob = run(scenario())

    assert bus.on(f"user:{bob.id}") == [
        {"type": "follow", "userId": alice.id, "targetUserId": bob.id},
        {"type": "unfollow", "userId": alice.id, "targetUserId": bob.id},
    ]


def test_lost_follow_insert_race_reports_followed_without_event(monkeypatch, bus):
    async def scenario():
        alice = await make_user("alice")
        bob = await make_user("bob")
        async with async_session_maker() as db:
            db.add(Follow(follower_id=alice.id, following_id=bob.id))
            await db.commit()

        real_get_follow = follow_service.get_follow
        calls = {"n": 0}

        async def stale_get_follow(db, follower_id, following_id):
            # The first read happens before the competing insert committed
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return await real_get_follow(db, follower_id, following_id)

        monkeypatch.setattr(follow_service, "get_follow", stale_get_follow)
        async with async_session_maker() as db:
            result = await toggle_follow(
                db, follower_id=alice.id, target_user_id=bob.id, bus=bus, cache=CacheAccelerator()
            )
        return alice, bob, result

    alice, bob, result = run(scenario())

    assert result.status == "followed"
    assert result.follow is not None
    assert bus.events == []
    assert run(load_user(bob.id)).followers_count == 0
    assert run(load_user(alice.id)).following_count == 0

def test_reconciliation_repairs_drifted_follow_counters(client):
    alice = register(client, "alice")
    bob = register(client, "bob")
    _follow(client, alice, bob["id"])

    async def corrupt_and_reconcile():
        async with async_session_maker() as db:
            await db.execute(update(User).values(followers_count=7, following_count=3))
            await db.commit()
        first = await reconcile_all(async_session_maker)
        second = await reconcile_all(async_session_maker)
        return first, second

    first, second = run(corrupt_and_reconcile())

    assert first["users"] == 2
    assert second == {"users": 0, "comments": 0, "creators": 0}
    assert _stats(client, bob["id"])["followers"] == 1
    assert _stats(client, bob["id"])["following"] == 0
    assert _stats(client, alice["id"])["following"] == 1
