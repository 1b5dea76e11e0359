from vidsphere.models.content import ContentType, COMMENTABLE_TYPES
from vidsphere.models.user import User
from vidsphere.models.video import Video
from vidsphere.models.article import Article
from vidsphere.models.comment import Comment
from vidsphere.models.engagement import Follow, Like
from vidsphere.models.bookmark import Bookmark

__all__ = ["ContentType", "COMMENTABLE_TYPES", "User", "Video", "Article", "Comment", "Follow", "Like", "Bookmark"]
