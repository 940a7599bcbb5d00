"""To-do list kept in the local store."""
from datetime import datetime
from typing import List, Optional

from config import LOCAL_KEYS
from config.exceptions import ValidationError
from ledger.models import Todo
from storage.collection_store import CollectionStore
from storage.local_store import LocalStore


class TodoList(CollectionStore[Todo]):
    """Tasks split into ongoing and completed views."""

    def __init__(self, local_store: LocalStore):
        super().__init__(local_store, LOCAL_KEYS.TODOS, Todo.from_dict)

    def add_todo(self, text: str, now: Optional[datetime] = None) -> Todo:
        """Add a task.

        Raises:
            ValidationError: If the text is blank
        """
        text = (text or "").strip()
        if not text:
            raise ValidationError("Please enter text for your task")

        now = now or datetime.now()
        todo = Todo(id=self.next_id(now), text=text, created_at=now)
        self.items.insert(0, todo)
        self.save()
        return todo

    def toggle_todo(self, todo_id: str, now: Optional[datetime] = None) -> Todo:
        """Flip a task between ongoing and completed.

        Raises:
            ValidationError: If no task has that id
        """
        todo = self.find(todo_id)
        if todo is None:
            raise ValidationError("Unknown task", {"id": todo_id})

        todo.is_completed = not todo.is_completed
        todo.completed_at = (now or datetime.now()) if todo.is_completed else None
        self.save()
        return todo

    def delete_todo(self, todo_id: str) -> bool:
        remaining = [t for t in self.items if t.id != todo_id]
        if len(remaining) == len(self.items):
            return False
        self.replace_all(remaining)
        return True

    @property
    def ongoing(self) -> List[Todo]:
        """Open tasks, most recently created first."""
        return sorted(
            (t for t in self.items if not t.is_completed),
            key=lambda t: t.created_at,
            reverse=True,
        )

    @property
    def completed(self) -> List[Todo]:
        """Done tasks, most recently completed first."""
        return sorted(
            (t for t in self.items if t.is_completed),
            key=lambda t: t.completed_at or datetime.min,
            reverse=True,
        )
