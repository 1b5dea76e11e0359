"""Shared response pieces."""
import math

from pydantic import BaseModel


class Pagination(BaseModel):
    current: int
    pages: int
    total: int


def page_meta(page: int, limit: int, total: int) -> Pagination:
    return Pagination(current=page, pages=math.ceil(total / limit) if limit else 0, total=total)
