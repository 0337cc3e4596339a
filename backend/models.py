"""
SQLAlchemy ORM models for the Finance Tracker.

Includes:
    - User (login identity, owns everything else)
    - Transaction (income/expense entries)
    - Goal (free-text savings goals with completion tracking)
"""

from datetime import datetime, date
from sqlalchemy import (
    Column, Integer, String, Float, Boolean, Date, DateTime,
    ForeignKey, Text
)
from sqlalchemy.orm import relationship
from database import Base


class User(Base):
    """
    Registered account.

    Email is the login name and the JWT subject. The password column only
    ever holds a bcrypt hash.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, unique=True, nullable=False, index=True)
    password = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    transactions = relationship("Transaction", back_populates="user", cascade="all, delete-orphan")
    goals = relationship("Goal", back_populates="user", cascade="all, delete-orphan")


class Transaction(Base):
    """Single income or expense entry."""
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String)
    amount = Column(Float, nullable=False, default=0.0)
    type = Column(String)  # 'income'|'expense', free text in practice
    category = Column(String, default="Uncategorized")
    account = Column(String)
    date = Column(Date, default=date.today)
    notes = Column(Text)

    user = relationship("User", back_populates="transactions")


class Goal(Base):
    """User savings goal."""
    __tablename__ = "goals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    text = Column(String(500), nullable=False)
    steps = Column(Text)  # JSON-encoded list, opaque to the server
    timeframe = Column(String)
    created_at = Column(Date, nullable=False, default=date.today)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(Date)

    user = relationship("User", back_populates="goals")
