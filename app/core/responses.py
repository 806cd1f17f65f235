from typing import Dict, Generic, List, Optional, TypeVar
from math import ceil
from pydantic import BaseModel
from sqlalchemy import func
from sqlmodel import Session, select

T = TypeVar("T")

class ApiResponse(BaseModel, Generic[T]):
    """Envelope shared by every endpoint."""
    success: bool = True
    message: str
    data: Optional[T] = None
    errors: Optional[Dict[str, List[str]]] = None

class Page(BaseModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    limit: int
    last_page: int

def paginate(session: Session, statement, page: int, limit: int, schema) -> Page:
    """Run `statement` for one page and convert rows with `schema.model_validate`."""
    page = max(page, 1)
    limit = max(min(limit, 100), 1)

    total = session.exec(
        select(func.count()).select_from(statement.order_by(None).subquery())
    ).one()
    rows = session.exec(statement.offset((page - 1) * limit).limit(limit)).all()

    return Page(
        items=[schema.model_validate(row) for row in rows],
        total=total,
        page=page,
        limit=limit,
        last_page=max(ceil(total / limit), 1),
    )
