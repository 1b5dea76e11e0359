from vidsphere.schemas.user import (
    UserCreate,
    UserStats,
    UserPublic,
    UserResponse,
    Token,
    LoginRequest,
)
from vidsphere.schemas.common import Pagination
from vidsphere.schemas.comment import CommentCreate, CommentUpdate, CommentResponse, CommentListResponse
from vidsphere.schemas.engagement import LikeToggleRequest, LikeToggleResponse, FollowToggleResponse
from vidsphere.schemas.video import VideoCreate, VideoResponse, VideoFeedResponse
from vidsphere.schemas.article import ArticleCreate, ArticleResponse, ArticleListResponse
from vidsphere.schemas.bookmark import BookmarkRequest, BookmarkResponse, BookmarkListResponse
