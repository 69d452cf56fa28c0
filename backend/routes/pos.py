# backend/routes/pos.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from database import get_db
from models.users import User
from schemas.pos import (
    CartAddItem, CartScan, CartUpdateItem, CartOut, CartItemOut, CatalogItem,
    CheckoutStartOut, CheckoutResultOut, PaymentRequest, PaymentResponse,
    GatewayCallback, ScanConfirm,
)
from services.cart import CartError, ProductNotFound
from services.catalog_store import StoreError
from services.checkout import CheckoutResult, CheckoutStateError, SaleRecordError
from services.payments import GatewayError, PaymentRejected
from services.pos_session import PosSession, pos_sessions
from utils.audit import write_log, client_ip
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/pos", tags=["POS"])
logger = logging.getLogger(__name__)


def get_pos_session(current_user: User = Depends(get_current_user)) -> PosSession:
    return pos_sessions.get(current_user.id)


# ---- HELPERS ----
def _cart_to_out(session: PosSession) -> CartOut:
    items = [
        CartItemOut(
            product_id=line.product.id,
            name=line.product.name,
            price=line.product.price,
            stock=line.product.stock,
            quantity=line.quantity,
            line_total=line.line_total,
        )
        for line in session.cart.lines
    ]
    return CartOut(
        items=items,
        total=session.cart.total(),
        checkout_state=session.checkout.state.value,
        pending_payment=session.checkout.pending_method,
    )

def _result_to_out(result: CheckoutResult) -> CheckoutResultOut:
    return CheckoutResultOut(
        transaction_id=result.transaction_id,
        total=result.total,
        payment_method=result.settlement.payment_method,
        amount_paid=result.settlement.amount_paid,
        change_given=result.settlement.change_given,
        payment_reference=result.settlement.reference,
        sale_ids=result.sale_ids,
        stock_reconciled=result.stock_reconciled,
        warnings=result.warnings,
    )

def _raise_for(e: Exception):
    # Domain errors -> HTTP errors; nothing here is fatal to the session
    if isinstance(e, ProductNotFound):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, CartError):
        raise HTTPException(status_code=400, detail=str(e))
    if isinstance(e, CheckoutStateError):
        raise HTTPException(status_code=409, detail=str(e))
    if isinstance(e, GatewayError):
        raise HTTPException(status_code=502, detail=str(e))
    if isinstance(e, PaymentRejected):
        raise HTTPException(status_code=400, detail=str(e))
    if isinstance(e, SaleRecordError):
        raise HTTPException(status_code=502, detail=f"Failed to record sale: {e}")
    if isinstance(e, StoreError):
        raise HTTPException(status_code=502, detail=str(e))
    raise e

def _payment_response(session: PosSession, outcome: dict, db: Session, user: User, request: Request) -> PaymentResponse:
    result: Optional[CheckoutResult] = outcome.get("result")
    if result is not None:
        write_log(
            db, user_id=user.id, action="CHECKOUT", resource="sales",
            status="SUCCESS" if result.stock_reconciled else "WARNING",
            ip=client_ip(request),
            meta={
                "transaction_id": result.transaction_id,
                "total": result.total,
                "payment_method": result.settlement.payment_method,
                "lines": len(result.sale_ids),
                "failed_stock_updates": result.failed_product_ids,
            },
        )
    return PaymentResponse(
        status=outcome["status"],
        state=session.checkout.state.value,
        payment_method=outcome.get("payment_method"),
        order_id=outcome.get("order_id"),
        snap_token=outcome.get("snap_token"),
        redirect_url=outcome.get("redirect_url"),
        result=_result_to_out(result) if result is not None else None,
    )

def _log_failure(db: Session, user: User, request: Request, action: str, e: Exception):
    write_log(db, user_id=user.id, action=action, resource="sales", status="FAIL",
              ip=client_ip(request), meta={"error": str(e)})


# =========================
# CATALOG SNAPSHOT
# =========================
@router.get("/catalog", response_model=List[CatalogItem])
def get_catalog(
    refresh: bool = Query(False, description="Re-read products from the store"),
    q: Optional[str] = Query(None, description="Filter by name or barcode"),
    session: PosSession = Depends(get_pos_session),
):
    try:
        products = session.refresh_catalog() if (refresh or not session.catalog) else session.catalog
    except StoreError as e:
        _raise_for(e)

    if q:
        term = q.lower()
        products = [
            p for p in products
            if term in p.name.lower() or (p.barcode and term in p.barcode.lower())
        ]
    return [CatalogItem(**p.__dict__) for p in products]


# =========================
# CART
# =========================
@router.get("/cart", response_model=CartOut)
def get_cart(session: PosSession = Depends(get_pos_session)):
    return _cart_to_out(session)

@router.post("/cart/items", response_model=CartOut)
def add_to_cart(payload: CartAddItem, session: PosSession = Depends(get_pos_session)):
    try:
        session.add_product(payload.product_id)
    except (CartError, CheckoutStateError, StoreError) as e:
        _raise_for(e)
    return _cart_to_out(session)

@router.post("/cart/scan", response_model=CartOut)
def scan_barcode(payload: CartScan, session: PosSession = Depends(get_pos_session)):
    try:
        session.scan(payload.barcode)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (CartError, CheckoutStateError, StoreError) as e:
        _raise_for(e)
    return _cart_to_out(session)

@router.put("/cart/items/{product_id}", response_model=CartOut)
def update_cart_item(product_id: int, payload: CartUpdateItem, session: PosSession = Depends(get_pos_session)):
    try:
        session.set_quantity(product_id, payload.quantity)
    except (CartError, CheckoutStateError) as e:
        _raise_for(e)
    return _cart_to_out(session)

@router.delete("/cart/items/{product_id}", response_model=CartOut)
def remove_cart_item(product_id: int, session: PosSession = Depends(get_pos_session)):
    try:
        session.remove(product_id)
    except CheckoutStateError as e:
        _raise_for(e)
    return _cart_to_out(session)

@router.delete("/cart", response_model=CartOut)
def clear_cart(session: PosSession = Depends(get_pos_session)):
    try:
        session.clear_cart()
    except CheckoutStateError as e:
        _raise_for(e)
    return _cart_to_out(session)


# =========================
# CHECKOUT
# =========================
@router.post("/checkout", response_model=CheckoutStartOut)
def start_checkout(session: PosSession = Depends(get_pos_session)):
    try:
        total = session.begin_checkout()
    except CheckoutStateError as e:
        _raise_for(e)
    return CheckoutStartOut(state=session.checkout.state.value, total=total)

@router.post("/checkout/pay", response_model=PaymentResponse)
async def pay(
    payload: PaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    session = pos_sessions.get(current_user.id)
    try:
        outcome = await session.pay(
            payload.payment_method, payload.amount_paid, customer=payload.customer_details,
        )
    except (SaleRecordError, GatewayError) as e:
        _log_failure(db, current_user, request, "CHECKOUT", e)
        _raise_for(e)
    except (PaymentRejected, CheckoutStateError) as e:
        _raise_for(e)
    return _payment_response(session, outcome, db, current_user, request)

@router.post("/checkout/gateway-callback", response_model=PaymentResponse)
async def gateway_callback(
    payload: GatewayCallback,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    # Result of the vendor popup as reported by the register
    session = pos_sessions.get(current_user.id)
    try:
        outcome = await session.gateway_callback(payload.outcome, payload.transaction_id)
    except (SaleRecordError, GatewayError) as e:
        logger.warning("Gateway payment failed: %s (%s)", e, payload.status_message)
        _log_failure(db, current_user, request, "CHECKOUT", e)
        _raise_for(e)
    except CheckoutStateError as e:
        _raise_for(e)
    return _payment_response(session, outcome, db, current_user, request)

@router.post("/checkout/qris/confirm", response_model=PaymentResponse)
async def confirm_qris(
    payload: ScanConfirm,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    session = pos_sessions.get(current_user.id)
    try:
        outcome = await session.confirm_scan_payment(payload.success)
    except SaleRecordError as e:
        _log_failure(db, current_user, request, "CHECKOUT", e)
        _raise_for(e)
    except (PaymentRejected, CheckoutStateError) as e:
        _raise_for(e)
    return _payment_response(session, outcome, db, current_user, request)

@router.post("/checkout/cancel", response_model=CartOut)
def cancel_checkout(session: PosSession = Depends(get_pos_session)):
    try:
        session.cancel_checkout()
    except CheckoutStateError as e:
        _raise_for(e)
    return _cart_to_out(session)
