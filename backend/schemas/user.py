# backend/schemas/user.py
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, Literal
from datetime import datetime

Role = Literal["admin", "manager", "cashier"]

# Shared properties for user models
class UserBase(BaseModel):
    email: EmailStr

# Schema for user authentication credentials
class UserLogin(UserBase):
    password: str

# Schema for staff accounts created by an administrator
class UserCreate(UserBase):
    username: str = Field(min_length=1)
    password: str = Field(min_length=6)
    role: Role = "cashier"  # default role

# Output schema for user profile details (never includes the password)
class UserResponse(UserBase):
    id: int
    username: str
    role: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

# Schema for JWT authentication token response
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse

# Schema for administrative role updates
class RoleUpdate(BaseModel):
    role: Role
