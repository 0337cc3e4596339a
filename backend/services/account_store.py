"""Persistence for users, transactions and goals over a SQLAlchemy session."""

from typing import Iterable, List, Optional

from sqlalchemy.orm import Session as DBSession

from models import User, Transaction, Goal
from .errors import NotFoundError


class AccountStore:
    """Lookups and writes keyed by numeric id or user email."""

    def __init__(self, db: DBSession):
        self.db = db

    def find_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def require_user(self, email: str) -> User:
        """Like find_user_by_email, but an unknown email is an error."""
        user = self.find_user_by_email(email)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def find_transactions_by_user(self, user: User) -> List[Transaction]:
        return (
            self.db.query(Transaction)
            .filter(Transaction.user_id == user.id)
            .order_by(Transaction.id)
            .all()
        )

    def find_goals_by_user(self, user: User) -> List[Goal]:
        return (
            self.db.query(Goal)
            .filter(Goal.user_id == user.id)
            .order_by(Goal.id)
            .all()
        )

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        return self.db.get(Transaction, transaction_id)

    def get_goal(self, goal_id: int) -> Optional[Goal]:
        return self.db.get(Goal, goal_id)

    def save(self, entity):
        self.db.add(entity)
        self.db.commit()
        self.db.refresh(entity)
        return entity

    def save_all(self, entities: Iterable) -> list:
        entities = list(entities)
        self.db.add_all(entities)
        self.db.commit()
        return entities

    def delete(self, entity) -> None:
        self.db.delete(entity)
        self.db.commit()
