# ABOUTME: Directory store: user records with their issued-count and status flag.
# ABOUTME: Counter changes are single-statement UPDATEs inside the caller's transaction.

import sqlite3

from loanledger.core.types import UserStatus
from loanledger.db.errors import DuplicateRecordError
from loanledger.db.mapping import UserRecord, row_to_user, user_to_row


class UserDirectory:
    """Wraps a sqlite3 connection and provides typed access to the users table."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def add_user(self, user: UserRecord) -> str:
        """Add a user to the directory.

        Raises:
            DuplicateRecordError: If the employee id is already registered.
        """
        row = user_to_row(user)
        columns = ", ".join(row.keys())
        placeholders = ", ".join("?" for _ in row)

        try:
            self._conn.execute(
                f"INSERT INTO users ({columns}) VALUES ({placeholders})",
                list(row.values()),
            )
        except sqlite3.IntegrityError as exc:
            if "users.employee_id" in str(exc):
                raise DuplicateRecordError(
                    f"User with employee id {user.employee_id} already exists"
                ) from exc
            raise

        return user.id

    def get_by_id(self, user_id: str) -> UserRecord | None:
        """Retrieve a user by id."""
        cursor = self._conn.execute("SELECT * FROM users WHERE id = ?", (user_id,))
        row = cursor.fetchone()
        return row_to_user(row) if row else None

    def get_by_employee_id(self, employee_id: str) -> UserRecord | None:
        """Retrieve a user by employee id."""
        cursor = self._conn.execute("SELECT * FROM users WHERE employee_id = ?", (employee_id,))
        row = cursor.fetchone()
        return row_to_user(row) if row else None

    def list_all(self) -> list[UserRecord]:
        """Return all users, ordered by full name."""
        cursor = self._conn.execute("SELECT * FROM users ORDER BY full_name, employee_id")
        return [row_to_user(row) for row in cursor.fetchall()]

    def increment_issued_count(self, user_id: str) -> None:
        """Count one more book as checked out to user_id.

        Raises:
            ValueError: If the user_id does not exist.
        """
        cursor = self._conn.execute(
            "UPDATE users SET issued_count = issued_count + 1, version = version + 1 "
            "WHERE id = ?",
            (user_id,),
        )
        if cursor.rowcount == 0:
            raise ValueError(f"User with id {user_id} not found")

    def decrement_issued_count(self, user_id: str) -> bool:
        """Count one fewer book as checked out to user_id.

        Returns:
            False if the count was already zero (left unchanged).
        """
        cursor = self._conn.execute(
            "UPDATE users SET issued_count = issued_count - 1, version = version + 1 "
            "WHERE id = ? AND issued_count > 0",
            (user_id,),
        )
        return cursor.rowcount > 0

    def set_status(self, user_id: str, status: UserStatus) -> None:
        """Set a user's status flag.

        Raises:
            ValueError: If the user_id does not exist.
        """
        cursor = self._conn.execute(
            "UPDATE users SET status = ?, version = version + 1 WHERE id = ?",
            (status.value, user_id),
        )
        if cursor.rowcount == 0:
            raise ValueError(f"User with id {user_id} not found")
