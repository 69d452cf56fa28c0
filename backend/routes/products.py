# backend/routes/products.py
from typing import Optional, List
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import or_
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import get_current_user, role_required
from utils.audit import write_log, client_ip
from models.users import User
from models.product import Product
from services.realtime import change_feed
import schemas.product as product_schemas

router = APIRouter(tags=["Products"])

can_edit = role_required("admin", "manager")

# ---- HELPERS ----
def _norm_barcode(barcode: Optional[str]) -> Optional[str]:
    if barcode is None:
        return None
    b = barcode.strip()
    return b if b else None

def _barcode_taken(db: Session, barcode: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(Product).filter(Product.barcode == barcode)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    return query.first() is not None

def _publish(event: str, product: Product):
    change_feed.publish("products", event, {"id": product.id, "stock": product.stock})


# =========================
# PRODUCT LIST
# =========================
@router.get("/products", response_model=product_schemas.ProductListPage)
def list_products(
    q: Optional[str] = Query(None, description="Search by name or barcode"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=1000),
    sort_by: str = Query("name"),
    order: str = Query("asc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Product)

    if q:
        like = f"%{q}%"
        query = query.filter(or_(Product.name.ilike(like), Product.barcode.ilike(like)))

    allowed = {
        "id": Product.id, "name": Product.name, "price": Product.price,
        "stock": Product.stock, "created_at": Product.created_at,
    }
    sort_col = allowed.get(sort_by.lower(), Product.name)
    query = query.order_by(sort_col.asc() if order == "asc" else sort_col.desc(), Product.id.asc())

    total = query.count()
    items: List[Product] = query.offset((page - 1) * page_size).limit(page_size).all()

    return {"items": items, "total": total, "page": page, "page_size": page_size}


# =========================
# SINGLE PRODUCT
# =========================
@router.get("/products/{product_id}", response_model=product_schemas.ProductOut)
def get_product(
    product_id: int,
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user),
):
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


# =========================
# CREATE
# =========================
@router.post("/products", response_model=product_schemas.ProductOut, status_code=201)
def add_product(
    payload: product_schemas.ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_edit),
):
    name = payload.name.strip()
    barcode = _norm_barcode(payload.barcode)
    if not name or not barcode:
        raise HTTPException(status_code=400, detail="Name and barcode are required")

    if _barcode_taken(db, barcode):
        raise HTTPException(status_code=409, detail="Barcode already exists")

    new_product = Product(
        name=name, price=payload.price, stock=payload.stock,
        barcode=barcode, image_url=payload.image_url,
    )
    db.add(new_product)
    db.commit()
    db.refresh(new_product)

    write_log(
        db, user_id=current_user.id, action="PRODUCT_CREATE", resource="products",
        status="SUCCESS", ip=client_ip(request), meta={"id": new_product.id, "barcode": new_product.barcode}
    )
    _publish("INSERT", new_product)
    return new_product


# =========================
# PARTIAL EDIT (PATCH)
# =========================
@router.patch("/products/{product_id}", response_model=product_schemas.ProductOut)
def edit_product(
    product_id: int,
    payload: product_schemas.ProductEditRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_edit),
):
    p = db.query(Product).filter(Product.id == product_id).first()
    if not p:
        raise HTTPException(status_code=404, detail="Product not found")

    changes = payload.model_dump(exclude_unset=True)

    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise HTTPException(400, "Name is required")
        p.name = name
    if "barcode" in changes:
        b = _norm_barcode(changes["barcode"])
        if not b:
            raise HTTPException(400, "Barcode is required")
        if b != p.barcode and _barcode_taken(db, b, exclude_id=p.id):
            raise HTTPException(409, "Barcode already exists")
        p.barcode = b
    if changes.get("price") is not None:
        p.price = changes["price"]
    if changes.get("stock") is not None:
        p.stock = changes["stock"]
    if "image_url" in changes:
        p.image_url = changes["image_url"]

    db.commit()
    db.refresh(p)

    write_log(
        db, user_id=current_user.id, action="PRODUCT_EDIT", resource="products",
        status="SUCCESS", ip=client_ip(request), meta={"product_id": p.id, "fields": sorted(changes)}
    )
    _publish("UPDATE", p)
    return p


# =========================
# DELETE
# =========================
@router.delete("/products/{product_id}")
def delete_product(
    product_id: int, request: Request, db: Session = Depends(get_db), current_user: User = Depends(can_edit),
):
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product: raise HTTPException(404, "Product not found")
    pid, pname = product.id, product.name
    db.delete(product)
    db.commit()
    write_log(db, user_id=current_user.id, action="PRODUCT_DELETE", resource="products", status="SUCCESS",
              ip=client_ip(request), meta={"id": pid})
    change_feed.publish("products", "DELETE", {"id": pid})
    return {"detail": f"Product '{pname}' deleted"}
