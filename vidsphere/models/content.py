"""Content kinds that engagement rows can point at."""
import enum


class ContentType(str, enum.Enum):
    VIDEO = "Video"
    COMMENT = "Comment"
    ARTICLE = "Article"


# Comments attach to top-level content only; replies use parent_id instead
COMMENTABLE_TYPES = frozenset({ContentType.VIDEO, ContentType.ARTICLE})
