# backend/routes/stats.py
import asyncio
import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from config import settings
from database import get_db, SessionLocal
from models.product import Product
from models.sale import Sale
from models.users import User
from schemas.reports import (
    RevenueSummary, DailyRevenue, DailyRevenueResponse, LowStockItem, LowStockResponse,
)
from services import reporting
from services.realtime import change_feed
from utils.tokenJWT import get_current_user, user_from_token

router = APIRouter(
    prefix="/stats",
    tags=["Stats"]
)
logger = logging.getLogger(__name__)


def _summary(db: Session) -> dict:
    sales = db.query(Sale.sale_price, Sale.quantity, Sale.sale_date).all()
    product_count = db.query(Product.id).count()
    return reporting.revenue_summary(sales, product_count)


# === Endpoint 1: Revenue overview ===

@router.get("/summary", response_model=RevenueSummary)
def get_revenue_summary(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return RevenueSummary(**_summary(db))

# === Endpoint 2: Chart data ===

@router.get("/daily-revenue", response_model=DailyRevenueResponse)
def get_daily_revenue_stats(
    days: int = Query(reporting.TREND_DAYS, ge=1, le=365),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    now = datetime.now()
    sales = (
        db.query(Sale.sale_price, Sale.quantity, Sale.sale_date)
        .filter(Sale.sale_date >= now - timedelta(days=days))
        .order_by(Sale.sale_date.asc())
        .all()
    )
    points = reporting.daily_trend(sales, now=now, days=days)
    return DailyRevenueResponse(data=[DailyRevenue(**p) for p in points])

# === Endpoint 3: Low stock ===

@router.get("/low-stock", response_model=LowStockResponse)
def get_low_stock(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    threshold = settings.LOW_STOCK_THRESHOLD
    candidates = db.query(Product).filter(Product.stock <= threshold).all()
    rows = reporting.low_stock(candidates, threshold=threshold)
    return LowStockResponse(
        items=[LowStockItem(product_id=p.id, name=p.name, barcode=p.barcode, stock=p.stock) for p in rows],
        threshold=threshold,
    )

# === Endpoint 4: Live revenue overview ===

def _fresh_summary() -> dict:
    db = SessionLocal()
    try:
        return _summary(db)
    finally:
        db.close()

async def _stop_task(task: asyncio.Task) -> None:
    # Cancel and reap, so a push that already failed is logged rather than lost
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.warning("Revenue push stopped: %s", e)

def _token_is_valid(token: str) -> bool:
    db = SessionLocal()
    try:
        return user_from_token(db, token) is not None
    finally:
        db.close()

@router.websocket("/ws")
async def revenue_stream(websocket: WebSocket, token: str = Query(None)):
    """Push the revenue overview on connect and after every change to sales."""
    if not token or not await run_in_threadpool(_token_is_valid, token):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    changes: asyncio.Queue = asyncio.Queue()

    # Writers publish from worker threads; hop back onto this loop
    unsubscribe = change_feed.subscribe(
        "sales", lambda event: loop.call_soon_threadsafe(changes.put_nowait, event)
    )

    async def _push_updates():
        while True:
            event = await changes.get()
            logger.debug("Sales change received: %s %s", event.event, event.record.get("id"))
            summary = await run_in_threadpool(_fresh_summary)
            await websocket.send_json(summary)

    pusher = None
    try:
        await websocket.send_json(await run_in_threadpool(_fresh_summary))
        pusher = asyncio.create_task(_push_updates())
        while True:
            # Keeps the socket open; clients may send anything as a ping
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()
        if pusher is not None:
            await _stop_task(pusher)
