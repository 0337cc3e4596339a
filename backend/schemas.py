"""Pydantic request/response schemas for type safety."""

import datetime as dt
import json
from typing import Optional, Literal

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Auth Schemas
# =============================================================================

class AuthRequest(BaseModel):
    """Credentials for register and login. Blank values are rejected by the auth layer."""
    email: str = ""
    password: str = ""


class RegisterResponse(BaseModel):
    message: str
    email: str


class LoginResponse(BaseModel):
    message: str
    email: str
    token: str


class MessageResponse(BaseModel):
    message: str


# =============================================================================
# Transaction Schemas
# =============================================================================

class TransactionIn(BaseModel):
    """
    Transaction payload for direct entry and JSON import.

    Unknown keys are ignored; values are coerced (e.g. "12.5" -> 12.5) but
    not otherwise validated.
    """
    title: Optional[str] = None
    amount: float = 0.0
    type: Optional[str] = None
    category: Optional[str] = None
    account: Optional[str] = None
    date: Optional[dt.date] = None
    notes: Optional[str] = None


class TransactionOut(BaseModel):
    id: int
    title: Optional[str] = None
    amount: float
    type: Optional[str] = None
    category: Optional[str] = None
    account: Optional[str] = None
    date: Optional[dt.date] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class ImportResponse(BaseModel):
    message: str
    imported: int
    details: str


# =============================================================================
# Goal Schemas
# =============================================================================

class GoalIn(BaseModel):
    """
    Goal payload for create and partial update.

    A null field means "leave unchanged" on update. ``createdAt`` and
    ``completedAt`` are server-assigned and ignored if sent.
    """
    text: Optional[str] = None
    steps: Optional[str] = None
    timeframe: Optional[str] = None
    completed: Optional[bool] = None

    @field_validator("steps", mode="before")
    @classmethod
    def encode_steps(cls, value):
        # Clients sometimes send the raw list instead of its JSON encoding
        if value is None or isinstance(value, str):
            return value
        return json.dumps(value)


class GoalOut(BaseModel):
    id: int
    text: str
    steps: Optional[str] = None
    timeframe: Optional[str] = None
    created_at: dt.date = Field(alias="createdAt")
    completed: bool = False
    completed_at: Optional[dt.date] = Field(None, alias="completedAt")

    class Config:
        from_attributes = True
        populate_by_name = True


# =============================================================================
# Recommendation Schemas
# =============================================================================

class ProductOut(BaseModel):
    """Product on the wire; also validates catalog override files."""
    id: int
    name: str
    description: str = ""
    price: float = 0.0
    image: str = ""
    url: str = ""

    class Config:
        from_attributes = True


class RecommendationResponse(BaseModel):
    """One page of product recommendations."""
    products: list[ProductOut]
    page: int
    size: int
    total: int
    has_more: bool = Field(alias="hasMore")
    query: str = ""
    query_source: Literal["llm", "heuristic"] = Field("heuristic", alias="querySource")

    class Config:
        populate_by_name = True


# =============================================================================
# System Schemas
# =============================================================================

class HealthResponse(BaseModel):
    status: str
    database: str
    llm: str
