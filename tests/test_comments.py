from __future__ import annotations

import uuid

import pytest
from sqlalchemy import update

from conftest import API, create_article, create_video, make_user, make_video, register, run
from vidsphere.core.exceptions import NotFound, ValidationError
from vidsphere.db.session import async_session_maker
from vidsphere.models.comment import Comment
from vidsphere.models.content import ContentType
from vidsphere.services.cache_service import CacheAccelerator
from vidsphere.services.comment_service import create_comment, delete_comment
from vidsphere.services.content_registry import ContentRef
from vidsphere.workers.reconciliation import reconcile_all


def _comment(client, user, content_id, text, content_type="Video", parent=None):
    payload = {"contentId": content_id, "contentType": content_type, "text": text}
    if parent:
        payload["parentComment"] = parent
    return client.post(f"{API}/engagement/comments", json=payload, headers=user["headers"])


def _list(client, content_id, content_type="Video", **params):
    res = client.get(
        f"{API}/engagement/comments",
        params={"contentId": content_id, "contentType": content_type, **params},
    )
    assert res.status_code == 200, res.text
    return res.json()


def test_threaded_comment_scenario(client):
    creator = register(client, "creator")
    viewer = register(client, "viewer")
    video = create_video(client, creator)

    res = _comment(client, viewer, video["id"], "  Where was this shot?  ")
    assert res.status_code == 201
    top = res.json()
    assert top["text"] == "Where was this shot?"
    assert top["user"]["username"] == "viewer"
    assert top["parent_id"] is None

    res = _comment(client, creator, video["id"], "Lisbon, last summer", parent=top["id"])
    assert res.status_code == 201
    reply = res.json()
    assert reply["parent_id"] == top["id"]

    listing = _list(client, video["id"])
    assert listing["pagination"] == {"current": 1, "pages": 1, "total": 1}
    [item] = listing["comments"]
    assert item["id"] == top["id"]
    assert item["replies_count"] == 1
    assert [r["id"] for r in item["replies"]] == [reply["id"]]

    replies = _list(client, video["id"], parentComment=top["id"])
    assert [c["id"] for c in replies["comments"]] == [reply["id"]]


def test_replies_count_tracks_creates_and_deletes(client):
    creator = register(client, "creator")
    video = create_video(client, creator)
    top = _comment(client, creator, video["id"], "First").json()
    replies = [_comment(client, creator, video["id"], f"reply {i}", parent=top["id"]).json() for i in range(4)]

    for reply in replies[:3]:
        assert client.delete(f"{API}/engagement/comments/{reply['id']}", headers=creator["headers"]).status_code == 200

    [item] = _list(client, video["id"])["comments"]
    assert item["replies_count"] == 4 - 3
    assert [r["id"] for r in item["replies"]] == [replies[3]["id"]]


def test_comment_on_article(client):
    author = register(client, "author")
    article = create_article(client, author)
    res = _comment(client, author, article["id"], "Part two soon", content_type="Article")
    assert res.status_code == 201
    assert res.json()["content_type"] == "Article"
    assert _list(client, article["id"], content_type="Article")["pagination"]["total"] == 1


def test_only_author_can_edit_or_delete(client):
    creator = register(client, "creator")
    other = register(client, "other")
    video = create_video(client, creator)
    comment = _comment(client, creator, video["id"], "Original").json()

    res = client.put(f"{API}/engagement/comments/{comment['id']}", json={"text": "Hijacked"}, headers=other["headers"])
    assert res.status_code == 403
    assert res.json()["error"] == "forbidden"
    assert client.delete(f"{API}/engagement/comments/{comment['id']}", headers=other["headers"]).status_code == 403

    res = client.put(f"{API}/engagement/comments/{comment['id']}", json={"text": "Edited"}, headers=creator["headers"])
    assert res.status_code == 200
    assert res.json()["text"] == "Edited"
    assert res.json()["is_edited"] is True


def test_comment_text_validation(client):
    creator = register(client, "creator")
    video = create_video(client, creator)

    res = _comment(client, creator, video["id"], "    ")
    assert res.status_code == 422
    assert res.json() == {"detail": "Comment text is required", "error": "validation_error"}

    res = _comment(client, creator, video["id"], "x" * 1001)
    assert res.status_code == 422
    assert res.json()["error"] == "validation_error"

    assert _comment(client, creator, video["id"], "x" * 1000).status_code == 201


def test_comment_length_is_checked_after_trimming(client):
    creator = register(client, "creator")
    video = create_video(client, creator)

    res = _comment(client, creator, video["id"], "y" * 999 + "   ")
    assert res.status_code == 201
    assert len(res.json()["text"]) == 999

    padded = "  " + "z" * 1000 + "\n"
    res = client.put(f"{API}/engagement/comments/{res.json()['id']}", json={"text": padded}, headers=creator["headers"])
    assert res.status_code == 200
    assert res.json()["text"] == "z" * 1000


def test_comment_targets(client):
    creator = register(client, "creator")
    video = create_video(client, creator)
    muted = create_video(client, creator, allow_comments=False)
    comment = _comment(client, creator, video["id"], "Top").json()

    res = _comment(client, creator, comment["id"], "Comment on a comment", content_type="Comment")
    assert res.status_code == 422

    res = _comment(client, creator, muted["id"], "Hello?")
    assert res.status_code == 403
    assert res.json()["detail"] == "Comments are disabled on this video"

    assert _comment(client, creator, str(uuid.uuid4()), "Nobody home").status_code == 404
    res = _comment(client, creator, video["id"], "Orphan", parent=str(uuid.uuid4()))
    assert res.status_code == 404
    assert res.json()["detail"] == "Parent comment not found"


def test_parent_must_belong_to_same_content(client):
    creator = register(client, "creator")
    first = create_video(client, creator)
    second = create_video(client, creator)
    parent = _comment(client, creator, first["id"], "On the first video").json()

    res = _comment(client, creator, second["id"], "Cross-posted reply", parent=parent["id"])

    assert res.status_code == 422
    assert res.json()["detail"] == "Parent comment belongs to different content"


def test_deleted_comment_is_hidden_and_not_engageable(client):
    creator = register(client, "creator")
    video = create_video(client, creator)
    keep = _comment(client, creator, video["id"], "Keep").json()
    gone = _comment(client, creator, video["id"], "Gone").json()

    assert client.delete(f"{API}/engagement/comments/{gone['id']}", headers=creator["headers"]).status_code == 200

    assert [c["id"] for c in _list(client, video["id"])["comments"]] == [keep["id"]]
    assert client.delete(f"{API}/engagement/comments/{gone['id']}", headers=creator["headers"]).status_code == 404
    res = client.post(
        f"{API}/engagement/likes/toggle",
        json={"contentId": gone["id"], "contentType": "Comment"},
        headers=creator["headers"],
    )
    assert res.status_code == 404
    assert _comment(client, creator, video["id"], "Late reply", parent=gone["id"]).status_code == 404


def test_comment_events(bus):
    async def scenario():
        owner = await make_user("owner")
        video = await make_video(owner)
        ref = ContentRef(ContentType.VIDEO, video.id)
        async with async_session_maker() as db:
            created = await create_comment(db, user_id=owner.id, content=ref, text="Hi", bus=bus, cache=CacheAccelerator())
            await delete_comment(db, comment_id=created.id, user_id=owner.id, bus=bus, cache=CacheAccelerator())
        return video, created

    video, created = run(scenario())

    new, deleted = bus.on(f"Video:{video.id}")
    assert new["type"] == "new"
    assert new["comment"]["id"] == str(created.id)
    assert new["comment"]["text"] == "Hi"
    assert deleted == {"type": "delete", "commentId": created.id}


def test_comment_service_errors(bus):
    async def scenario():
        owner = await make_user("owner")
        video = await make_video(owner)
        async with async_session_maker() as db:
            with pytest.raises(ValidationError):
                await create_comment(
                    db, user_id=owner.id, content=ContentRef(ContentType.VIDEO, video.id), text="",
                    bus=bus, cache=CacheAccelerator(),
                )
            with pytest.raises(NotFound):
                await delete_comment(db, comment_id=uuid.uuid4(), user_id=owner.id, bus=bus, cache=CacheAccelerator())

    run(scenario())
    assert bus.events == []


def test_reconciliation_repairs_replies_count(client):
    creator = register(client, "creator")
    video = create_video(client, creator)
    top = _comment(client, creator, video["id"], "Top").json()
    _comment(client, creator, video["id"], "Reply", parent=top["id"])

    async def corrupt_and_reconcile():
        async with async_session_maker() as db:
            await db.execute(update(Comment).where(Comment.id == uuid.UUID(top["id"])).values(replies_count=5))
            await db.commit()
        return await reconcile_all(async_session_maker)

    assert run(corrupt_and_reconcile())["comments"] == 1
    assert _list(client, video["id"])["comments"][0]["replies_count"] == 1
