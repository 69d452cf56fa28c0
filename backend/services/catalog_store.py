# backend/services/catalog_store.py
import logging
from typing import Callable, Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import SessionLocal
from models.product import Product
from models.sale import Sale
from services.cart import ProductSnapshot
from services.realtime import ChangeFeed, change_feed

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """A read or write against the catalog store was rejected."""


def sale_to_record(sale: Sale) -> Dict:
    return {
        "id": sale.id,
        "product_id": sale.product_id,
        "quantity": sale.quantity,
        "sale_price": sale.sale_price,
        "transaction_id": sale.transaction_id,
        "sale_date": sale.sale_date.isoformat() if sale.sale_date else None,
        "payment_method": sale.payment_method,
    }


class CatalogStore:
    """Products and sales as seen by the checkout flow.

    Each call opens its own session and commits on its own, so consecutive
    calls are independent: a later failure never rolls back an earlier write.
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal, feed: ChangeFeed = change_feed):
        self.session_factory = session_factory
        self.feed = feed

    def list_products(self) -> List[ProductSnapshot]:
        db = self.session_factory()
        try:
            rows = db.query(Product).order_by(Product.name.asc()).all()
            return [ProductSnapshot.from_model(p) for p in rows]
        except SQLAlchemyError as e:
            logger.error("Failed to load products: %s", e)
            raise StoreError(str(e)) from e
        finally:
            db.close()

    def insert_sales(self, rows: List[Dict]) -> List[int]:
        """Insert all sale rows in one commit: either every row lands or none."""
        db = self.session_factory()
        try:
            sales = [Sale(**row) for row in rows]
            db.add_all(sales)
            db.commit()
            records = [sale_to_record(s) for s in sales]
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Failed to insert sales: %s", e)
            raise StoreError(str(e)) from e
        finally:
            db.close()

        for record in records:
            self.feed.publish("sales", "INSERT", record)
        return [r["id"] for r in records]

    def update_stock(self, product_id: int, stock: int) -> None:
        # Blind write of the new value; concurrent checkouts race here and the
        # last write wins.
        db = self.session_factory()
        try:
            updated = db.query(Product).filter(Product.id == product_id).update(
                {Product.stock: stock}, synchronize_session=False
            )
            if not updated:
                raise StoreError(f"Product {product_id} not found")
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Failed to update stock of product %s: %s", product_id, e)
            raise StoreError(str(e)) from e
        finally:
            db.close()

        self.feed.publish("products", "UPDATE", {"id": product_id, "stock": stock})


catalog_store = CatalogStore()
