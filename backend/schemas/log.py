# backend/schemas/log.py
from pydantic import BaseModel
from typing import Any, List, Optional
from datetime import datetime

# One audit entry as returned to administrators
class LogResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    resource: str
    status: str
    ip: Optional[str] = None
    ts: datetime
    meta: Optional[Any] = None

    class Config:
        from_attributes = True

class LogPage(BaseModel):
    items: List[LogResponse]
    total: int
    page: int
    page_size: int
