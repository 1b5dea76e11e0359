from __future__ import annotations

import uuid

from sqlalchemy import func, select

from conftest import API, InMemoryRedis, create_video, make_user, make_video, register, run
from vidsphere.db.session import async_session_maker
from vidsphere.main import app
from vidsphere.models.bookmark import Bookmark
from vidsphere.services import bookmark_service
from vidsphere.services.cache_service import CacheAccelerator


def _bookmark(client, user, video_id, **payload):
    return client.post(f"{API}/videos/{video_id}/bookmark", json=payload, headers=user["headers"])


async def _bookmark_rows(user_id) -> int:
    async with async_session_maker() as db:
        return await db.scalar(select(func.count(Bookmark.id)).where(Bookmark.user_id == user_id))


def test_bookmark_then_update_keeps_one_row(client):
    creator = register(client, "creator")
    fan = register(client, "fan")
    video = create_video(client, creator)

    res = _bookmark(client, fan, video["id"], notes="  watch later  ")
    assert res.status_code == 201
    body = res.json()
    assert body["status"] == "created"
    assert body["bookmark"]["notes"] == "watch later"
    assert body["bookmark"]["collection_name"] == "Default"
    assert body["bookmark"]["video"]["id"] == video["id"]
    assert body["bookmark"]["video"]["is_bookmarked"] is True

    res = _bookmark(client, fan, video["id"], collectionName="Travel")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "updated"
    assert body["bookmark"]["collection_name"] == "Travel"
    assert body["bookmark"]["notes"] == "watch later"
    assert run(_bookmark_rows(uuid.UUID(fan["id"]))) == 1


def test_bookmark_without_body_uses_default_collection(client):
    creator = register(client, "creator")
    fan = register(client, "fan")
    video = create_video(client, creator)

    res = client.post(f"{API}/videos/{video['id']}/bookmark", headers=fan["headers"])

    assert res.status_code == 201
    assert res.json()["bookmark"]["collection_name"] == "Default"
    assert res.json()["bookmark"]["notes"] is None


def test_bookmark_notes_length_is_checked_after_trimming(client):
    creator = register(client, "creator")
    fan = register(client, "fan")
    video = create_video(client, creator)

    res = _bookmark(client, fan, video["id"], notes="n" * 201)
    assert res.status_code == 422
    assert res.json() == {"detail": "Notes cannot be longer than 200 characters", "error": "validation_error"}

    assert _bookmark(client, fan, video["id"], notes=" " + "n" * 200 + " ").status_code == 201


def test_bookmark_missing_or_unpublished_video(client):
    creator = register(client, "creator")
    fan = register(client, "fan")
    draft = create_video(client, creator, is_published=False)

    res = _bookmark(client, fan, str(uuid.uuid4()))
    assert res.status_code == 404
    assert res.json() == {"detail": "Video not found", "error": "not_found"}

    res = _bookmark(client, fan, draft["id"])
    assert res.status_code == 403
    assert res.json() == {"detail": "Cannot bookmark unavailable videos", "error": "forbidden"}


def test_remove_bookmark(client):
    creator = register(client, "creator")
    fan = register(client, "fan")
    video = create_video(client, creator)
    _bookmark(client, fan, video["id"])

    res = client.delete(f"{API}/videos/{video['id']}/bookmark", headers=fan["headers"])
    assert res.status_code == 200
    assert res.json() == {"message": "Bookmark removed", "video_id": video["id"]}

    res = client.delete(f"{API}/videos/{video['id']}/bookmark", headers=fan["headers"])
    assert res.status_code == 404
    assert res.json() == {"detail": "Bookmark not found", "error": "not_found"}


def test_bookmarks_require_authentication(client):
    assert client.get(f"{API}/videos/user/bookmarks").status_code == 401
    assert client.post(f"{API}/videos/{uuid.uuid4()}/bookmark").status_code == 401


def test_list_bookmarks_by_collection_newest_first(client):
    creator = register(client, "creator")
    fan = register(client, "fan")
    first = create_video(client, creator, title="First")
    second = create_video(client, creator, title="Second")
    third = create_video(client, creator, title="Third")
    _bookmark(client, fan, first["id"], collectionName="Cooking")
    _bookmark(client, fan, second["id"])
    _bookmark(client, fan, third["id"], collectionName="Cooking")

    listing = client.get(f"{API}/videos/user/bookmarks", headers=fan["headers"]).json()
    assert [b["video_id"] for b in listing["bookmarks"]] == [third["id"], second["id"], first["id"]]
    assert listing["pagination"] == {"current": 1, "pages": 1, "total": 3}

    cooking = client.get(
        f"{API}/videos/user/bookmarks", params={"collection": "Cooking", "limit": 1}, headers=fan["headers"]
    ).json()
    assert [b["video_id"] for b in cooking["bookmarks"]] == [third["id"]]
    assert cooking["pagination"] == {"current": 1, "pages": 2, "total": 2}

    assert client.get(f"{API}/videos/user/bookmarks", params={"limit": 51}, headers=fan["headers"]).status_code == 422

    # Other users see only their own bookmarks
    other = register(client, "other")
    assert client.get(f"{API}/videos/user/bookmarks", headers=other["headers"]).json()["bookmarks"] == []


def test_bookmark_collections_are_counted_and_sorted(client):
    creator = register(client, "creator")
    fan = register(client, "fan")
    videos = [create_video(client, creator, title=f"Clip {i}") for i in range(3)]
    _bookmark(client, fan, videos[0]["id"], collectionName="Travel")
    _bookmark(client, fan, videos[1]["id"], collectionName="Cooking")
    _bookmark(client, fan, videos[2]["id"], collectionName="Travel")

    res = client.get(f"{API}/videos/user/bookmark-collections", headers=fan["headers"])

    assert res.status_code == 200
    assert res.json() == {"collections": [{"name": "Cooking", "count": 1}, {"name": "Travel", "count": 2}]}


def test_detail_shows_bookmark_state_and_cache_follows_changes(client):
    redis = InMemoryRedis()
    app.state.cache = CacheAccelerator(redis)
    creator = register(client, "creator")
    fan = register(client, "fan")
    video = create_video(client, creator)
    url = f"{API}/videos/{video['id']}"

    assert client.get(url, headers=fan["headers"]).json()["is_bookmarked"] is False
    _bookmark(client, fan, video["id"])
    assert client.get(url, headers=fan["headers"]).json()["is_bookmarked"] is True
    assert client.get(url, headers=creator["headers"]).json()["is_bookmarked"] is False

    client.delete(f"{url}/bookmark", headers=fan["headers"])
    assert client.get(url, headers=fan["headers"]).json()["is_bookmarked"] is False


def test_lost_bookmark_insert_race_updates_existing_row(monkeypatch):
    async def scenario():
        owner = await make_user("owner")
        fan = await make_user("fan")
        video = await make_video(owner)
        async with async_session_maker() as db:
            db.add(Bookmark(user_id=fan.id, video_id=video.id, collection_name="Later"))
            await db.commit()

        real_get_bookmark = bookmark_service.get_bookmark
        calls = {"n": 0}

        async def stale_get_bookmark(db, user_id, video_id):
            # The first read happens before the competing insert committed
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return await real_get_bookmark(db, user_id, video_id)

        monkeypatch.setattr(bookmark_service, "get_bookmark", stale_get_bookmark)
        async with async_session_maker() as db:
            bookmark, created = await bookmark_service.save_bookmark(
                db, user_id=fan.id, video_id=video.id, notes="from the second tab"
            )
        return fan, bookmark, created

    fan, bookmark, created = run(scenario())

    assert created is False
    assert bookmark.collection_name == "Later"
    assert bookmark.notes == "from the second tab"
    assert run(_bookmark_rows(fan.id)) == 1
