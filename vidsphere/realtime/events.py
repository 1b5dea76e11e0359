"""Event payloads pushed to subscribers. Key names are part of the client contract."""
from uuid import UUID

LIKE = "like"
UNLIKE = "unlike"
COMMENT_NEW = "new"
COMMENT_UPDATE = "update"
COMMENT_DELETE = "delete"
FOLLOW = "follow"
UNFOLLOW = "unfollow"


def like_event(event_type: str, user_id: UUID, content_id: UUID) -> dict:
    return {"type": event_type, "userId": user_id, "contentId": content_id}


def comment_event(event_type: str, comment: dict) -> dict:
    return {"type": event_type, "comment": comment}


def comment_deleted_event(comment_id: UUID) -> dict:
    return {"type": COMMENT_DELETE, "commentId": comment_id}


def follow_event(event_type: str, user_id: UUID, target_user_id: UUID) -> dict:
    return {"type": event_type, "userId": user_id, "targetUserId": target_user_id}
