# backend/routes/midtrans.py
import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas.midtrans import MidtransTransactionRequest, MidtransTransactionResponse
from utils.audit import write_log, client_ip
from utils.midtrans_client import MidtransError, midtrans_client
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/midtrans", tags=["Midtrans"])
logger = logging.getLogger(__name__)


@router.post("/transaction", response_model=MidtransTransactionResponse)
async def create_transaction(
    payload: MidtransTransactionRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Issue a Snap token for a gateway payment. The server key never leaves the backend."""
    if not payload.order_id or not payload.gross_amount or not payload.item_details or not payload.customer_details:
        raise HTTPException(status_code=400, detail="Missing required parameters")

    try:
        result = await midtrans_client.create_transaction(
            payload.order_id, payload.gross_amount, payload.item_details, payload.customer_details,
        )
    except MidtransError as e:
        write_log(db, user_id=current_user.id, action="MIDTRANS_TOKEN", resource="payments", status="FAIL",
                  ip=client_ip(request), meta={"order_id": payload.order_id, "error": str(e)})
        raise HTTPException(status_code=e.status_code, detail={"error": e.payload or str(e)})
    except httpx.RequestError as e:
        logger.error("Midtrans unreachable: %s", e)
        raise HTTPException(status_code=500, detail={"error": str(e)})

    write_log(db, user_id=current_user.id, action="MIDTRANS_TOKEN", resource="payments", status="SUCCESS",
              ip=client_ip(request), meta={"order_id": payload.order_id})
    return result
