import math
from dataclasses import dataclass, field
from typing import Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from errors import InvalidInput

T = TypeVar("T")

DEFAULT_SORT_FIELD = "created_at"
MAX_LIMIT = 100


class PageParams(BaseModel):
    model_config = ConfigDict(extra="forbid")

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=MAX_LIMIT)
    sort_by: str = DEFAULT_SORT_FIELD
    sort_order: Literal["asc", "desc"] = "desc"

    @classmethod
    def from_query(
        cls,
        page: Optional[str] = None,
        limit: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
        *,
        default_limit: int = 10,
        max_limit: int = MAX_LIMIT,
    ) -> "PageParams":
        """Lenient construction from raw query strings: clamp instead of reject."""
        try:
            page_num = int(page) if page else 1
        except ValueError:
            page_num = 1
        try:
            limit_num = int(limit) if limit else default_limit
        except ValueError:
            limit_num = default_limit
        return cls(
            page=max(page_num, 1),
            limit=min(max(limit_num, 1), min(max_limit, MAX_LIMIT)),
            sort_by=sort_by or DEFAULT_SORT_FIELD,
            sort_order="asc" if sort_order == "asc" else "desc",
        )

    @property
    def skip(self) -> int:
        return skip_for(self.page, self.limit)


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool

    def to_dict(self) -> dict[str, object]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "pages": self.pages,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }


@dataclass
class Page(Generic[T]):
    records: list[T] = field(default_factory=list)
    pagination: Optional[Pagination] = None


def paginate(total: int, page: int, limit: int) -> Pagination:
    if total < 0:
        raise InvalidInput("Total must not be negative")
    if page < 1:
        raise InvalidInput("Page must be a positive integer")
    if limit < 1 or limit > MAX_LIMIT:
        raise InvalidInput(f"Limit must be between 1 and {MAX_LIMIT}")
    pages = math.ceil(total / limit)
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        pages=pages,
        has_next=page < pages,
        has_prev=page > 1,
    )


def skip_for(page: int, limit: int) -> int:
    return (page - 1) * limit
