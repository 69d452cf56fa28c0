# backend/models/sale.py
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from database import Base

# One row per sold cart line. Rows written by the same checkout share a
# transaction_id and carry identical payment metadata. Never updated.
class Sale(Base):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    quantity = Column(Integer, nullable=False)
    sale_price = Column(Float, nullable=False) # Unit price captured at transaction time

    transaction_id = Column(String(36), nullable=False, index=True)
    sale_date = Column(DateTime, default=datetime.now, nullable=False, index=True)

    payment_method = Column(String(30), nullable=False, default="cash")
    amount_paid = Column(Float, nullable=False, default=0)
    change_given = Column(Float, nullable=False, default=0)
    payment_reference = Column(String, nullable=True) # Gateway or mock reference

    cashier_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    product = relationship("Product")
    cashier = relationship("User")
