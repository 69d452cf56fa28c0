# backend/routes/sales.py
import uuid
from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import String, cast, or_
from sqlalchemy.orm import Session, joinedload

from database import get_db
from models.product import Product
from models.sale import Sale
from models.users import User
from schemas.sale import SaleOut, SalesPage, QuickSaleRequest
from services.catalog_store import StoreError, catalog_store
from services.payments import Settlement
from utils.audit import write_log, client_ip
from utils.dates import parse_day, day_range
from utils.tokenJWT import get_current_user, role_required

router = APIRouter(prefix="/sales", tags=["Sales"])

history_access = role_required("admin", "manager")

LATEST_SALES_LIMIT = 10


def _sale_to_out(sale: Sale) -> SaleOut:
    return SaleOut(
        id=sale.id,
        product_id=sale.product_id,
        product_name=sale.product.name if sale.product else "N/A",
        quantity=sale.quantity,
        sale_price=sale.sale_price,
        line_total=sale.sale_price * sale.quantity,
        sale_date=sale.sale_date,
        payment_method=sale.payment_method,
        amount_paid=sale.amount_paid,
        change_given=sale.change_given,
        transaction_id=sale.transaction_id,
        payment_reference=sale.payment_reference,
    )

def _parse_day(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return parse_day(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Bad date format: {value}")


# -----------------------------
# Sales history (admin / manager)
# -----------------------------
@router.get("", response_model=SalesPage)
def list_sales(
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    q: Optional[str] = Query(None, description="Search by product name or sale id"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(history_access),
):
    query = db.query(Sale).outerjoin(Product, Sale.product_id == Product.id).options(joinedload(Sale.product))

    start, end = day_range(_parse_day(start_date), _parse_day(end_date))
    if start:
        query = query.filter(Sale.sale_date >= start)
    if end:
        query = query.filter(Sale.sale_date < end)

    if q:
        like = f"%{q}%"
        query = query.filter(or_(Product.name.ilike(like), cast(Sale.id, String).ilike(like)))

    query = query.order_by(Sale.sale_date.desc(), Sale.id.desc())
    total = query.count()
    rows = query.offset((page - 1) * page_size).limit(page_size).all()

    return {"items": [_sale_to_out(s) for s in rows], "total": total, "page": page, "page_size": page_size}


# -----------------------------
# Latest sales for the dashboard
# -----------------------------
@router.get("/latest", response_model=List[SaleOut])
def latest_sales(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows = (
        db.query(Sale)
        .options(joinedload(Sale.product))
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .limit(LATEST_SALES_LIMIT)
        .all()
    )
    # Rows whose product has been deleted are not shown
    return [_sale_to_out(s) for s in rows if s.product is not None]


# -----------------------------
# All rows of one checkout
# -----------------------------
@router.get("/transactions/{transaction_id}", response_model=List[SaleOut])
def get_transaction(
    transaction_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows = (
        db.query(Sale)
        .options(joinedload(Sale.product))
        .filter(Sale.transaction_id == transaction_id)
        .order_by(Sale.id.asc())
        .all()
    )
    if not rows:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return [_sale_to_out(s) for s in rows]


# -----------------------------
# Quick sale of a single product
# -----------------------------
@router.post("/quick", response_model=List[SaleOut], status_code=201)
def quick_sale(
    payload: QuickSaleRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(history_access),
):
    product = db.query(Product).filter(Product.id == payload.product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    if payload.quantity > product.stock:
        raise HTTPException(
            status_code=400,
            detail=f"Quantity must be positive and cannot exceed stock ({product.stock})",
        )

    total = product.price * payload.quantity
    settlement = Settlement("cash", total, 0)
    new_stock = product.stock - payload.quantity

    # Same two independent writes as a checkout, for a single line
    transaction_id = str(uuid.uuid4())
    try:
        sale_ids = catalog_store.insert_sales([{
            "product_id": product.id,
            "quantity": payload.quantity,
            "sale_price": product.price,
            "transaction_id": transaction_id,
            "sale_date": datetime.now(),
            "payment_method": settlement.payment_method,
            "amount_paid": settlement.amount_paid,
            "change_given": settlement.change_given,
            "cashier_id": current_user.id,
        }])
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to sell product: {e}")

    try:
        catalog_store.update_stock(product.id, new_stock)
    except StoreError as e:
        write_log(db, user_id=current_user.id, action="QUICK_SALE", resource="sales", status="WARNING",
                  ip=client_ip(request), meta={"transaction_id": transaction_id, "error": str(e)})
        raise HTTPException(status_code=502, detail=f"Sale recorded but stock update failed: {e}")

    write_log(db, user_id=current_user.id, action="QUICK_SALE", resource="sales", status="SUCCESS",
              ip=client_ip(request), meta={"transaction_id": transaction_id, "product_id": product.id,
                                           "quantity": payload.quantity})

    rows = db.query(Sale).options(joinedload(Sale.product)).filter(Sale.id.in_(sale_ids)).all()
    return [_sale_to_out(s) for s in rows]
