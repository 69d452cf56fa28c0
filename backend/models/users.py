# backend/models/users.py
from sqlalchemy import Column, Integer, String, DateTime, func
from database import Base

ROLES = ("admin", "manager", "cashier")

# Represents a staff account with authentication details and system role
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="cashier")
    created_at = Column(DateTime, server_default=func.now())
