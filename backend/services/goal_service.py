"""Per-user savings goals with partial-update semantics."""

from datetime import date
from typing import List

from models import Goal
from schemas import GoalIn
from .account_store import AccountStore
from .errors import ValidationError
from .ownership import ensure_owner


class GoalService:
    """
    Goal CRUD scoped to the calling user.

    ``completed_at`` is set whenever ``completed`` becomes true and cleared
    whenever it becomes false.
    """

    def __init__(self, store: AccountStore):
        self.store = store

    def list(self, email: str) -> List[Goal]:
        user = self.store.require_user(email)
        return self.store.find_goals_by_user(user)

    def create(self, email: str, data: GoalIn) -> Goal:
        if data.text is None or not data.text.strip():
            raise ValidationError("Goal text is required")

        user = self.store.require_user(email)
        completed = bool(data.completed)
        goal = Goal(
            user_id=user.id,
            text=data.text,
            steps=data.steps,
            timeframe=data.timeframe,
            created_at=date.today(),
            completed=completed,
            completed_at=date.today() if completed else None,
        )
        return self.store.save(goal)

    def update(self, email: str, goal_id: int, patch: GoalIn) -> Goal:
        """Overwrite only the fields ``patch`` supplies (non-null)."""
        if patch.text is not None and not patch.text.strip():
            raise ValidationError("Goal text is required")

        user = self.store.require_user(email)
        goal = ensure_owner(user, self.store.get_goal(goal_id), "Goal")

        if patch.text is not None:
            goal.text = patch.text
        if patch.steps is not None:
            goal.steps = patch.steps
        if patch.timeframe is not None:
            goal.timeframe = patch.timeframe
        if patch.completed is not None:
            goal.completed = patch.completed
            if patch.completed and goal.completed_at is None:
                goal.completed_at = date.today()
            elif not patch.completed:
                goal.completed_at = None

        return self.store.save(goal)

    def complete(self, email: str, goal_id: int) -> Goal:
        return self.update(email, goal_id, GoalIn(completed=True))

    def delete(self, email: str, goal_id: int) -> None:
        user = self.store.require_user(email)
        goal = ensure_owner(user, self.store.get_goal(goal_id), "Goal")
        self.store.delete(goal)
