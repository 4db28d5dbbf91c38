from math import ceil

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for request and response bodies; camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Pagination(ApiModel):
    total: int
    page: int
    limit: int
    total_pages: int


class MessageResponse(ApiModel):
    message: str


def build_pagination(total: int, page: int, limit: int) -> Pagination:
    return Pagination(total=total, page=page, limit=limit, total_pages=ceil(total / limit) if limit else 0)


def paginate(query, page: int, limit: int):
    """Apply offset/limit to a query and count its unpaginated rows."""
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, build_pagination(total, page, limit)
