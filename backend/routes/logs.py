# backend/routes/logs.py
from typing import Optional
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Query as SAQuery, Session

from database import get_db
from models.log import Log
from models.users import User
from schemas.log import LogPage
from utils.dates import parse_day, day_range
from utils.tokenJWT import role_required

router = APIRouter(prefix="/logs", tags=["Logs"])

admin_only = role_required("admin")


def _day_or_none(value: Optional[str]) -> Optional[datetime]:
    # Malformed dates are ignored rather than rejected
    if not value:
        return None
    try:
        return parse_day(value)
    except ValueError:
        return None

def _apply_filters(query: SAQuery, *, action, user_id, resource, status, date_from, date_to) -> SAQuery:
    if action:
        query = query.filter(Log.action.ilike(f"%{action}%"))
    if user_id is not None:
        query = query.filter(Log.user_id == user_id)
    if resource:
        query = query.filter(Log.resource.ilike(f"%{resource}%"))
    if status:
        query = query.filter(Log.status == status.upper())

    start, end = day_range(_day_or_none(date_from), _day_or_none(date_to))
    if start:
        query = query.filter(Log.ts >= start)
    if end:
        query = query.filter(Log.ts < end)
    return query


# =========================
# AUDIT TRAIL (admin)
# =========================
@router.get("", response_model=LogPage)
def get_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    action: Optional[str] = Query(None, description="Filter by action"),
    user_id: Optional[int] = Query(None, description="Filter by user id"),
    resource: Optional[str] = Query(None, description="Filter by resource"),
    status: Optional[str] = Query(None, description="SUCCESS, FAIL or WARNING"),
    date_from: Optional[str] = Query(None, description="YYYY-MM-DD"),
    date_to: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    query = _apply_filters(
        db.query(Log),
        action=action, user_id=user_id, resource=resource, status=status,
        date_from=date_from, date_to=date_to,
    ).order_by(Log.ts.desc(), Log.id.desc())

    total = query.count()
    entries = query.offset((page - 1) * page_size).limit(page_size).all()
    return {"items": entries, "total": total, "page": page, "page_size": page_size}
