"""SQLite-based persistence for the transaction ledger.

This module owns the single on-disk database holding the ``transactions``
ledger and the single-row ``users`` credential table.

Features:
- Lazily opened, process-wide shared connection
- Idempotent schema creation with automatic legacy-column migration
- Transaction CRUD and aggregate queries (balance, income, expense, by category)
- Full reset with a drop/recreate path and a row-deletion fallback
- Snapshot tables (``<table>_backup_<id>``) for backup, restore and delete
"""
import hmac
import re
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from werkzeug.security import check_password_hash, generate_password_hash

from config import BACKUP, LEDGER, STORAGE, get_logger
from config.exceptions import StorageError, ValidationError
from ledger.models import (
    DateLike,
    Transaction,
    TransactionType,
    format_timestamp,
    parse_timestamp,
)

logger = get_logger(__name__)


TRANSACTION_COLUMNS = ("id", "date", "category", "amount", "type", "notes")
USER_COLUMNS = ("id", "password")

# Backup ids end up in table names, so only plain word characters are allowed
_SAFE_BACKUP_ID = re.compile(r"^[A-Za-z0-9_]+$")

# Hash methods produced by werkzeug.security.generate_password_hash
_HASH_METHODS = ("pbkdf2", "scrypt")


def _transactions_ddl(table: str) -> str:
    return f"""
    CREATE TABLE IF NOT EXISTS {table} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        date TEXT NOT NULL,
        category TEXT NOT NULL,
        amount REAL NOT NULL,
        type TEXT NOT NULL CHECK(type IN ('income', 'expense')),
        notes TEXT
    )
    """


USERS_DDL = """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY,
        password TEXT NOT NULL
    )
"""


def _kind_value(kind: Union[TransactionType, str]) -> str:
    return kind.value if isinstance(kind, TransactionType) else str(kind)


def _is_password_hash(value: str) -> bool:
    if value.count("$") != 2:
        return False
    method = value.split("$", 1)[0]
    return method.split(":", 1)[0] in _HASH_METHODS


class LedgerDatabase:
    """Handles persistence of transactions and the credential row to SQLite.

    The connection is opened on first use and shared by every call; calls
    are serialized through a re-entrant lock. Schema creation and migration
    run once, on the first call that needs the connection.
    """

    DEFAULT_DATA_DIR = Path.home() / STORAGE.DATA_DIR_NAME
    DEFAULT_DB_FILE = STORAGE.DATABASE_FILE

    def __init__(self, data_dir: Optional[Path] = None):
        """Initialize the store without touching the disk.

        Args:
            data_dir: Directory for the database file. Defaults to ~/.pocket-ledger/
        """
        self.data_dir = Path(data_dir) if data_dir else self.DEFAULT_DATA_DIR
        self.db_path = self.data_dir / self.DEFAULT_DB_FILE
        self._lock = threading.RLock()
        self._conn: Optional[sqlite3.Connection] = None
        self._initialized = False

    # === Connection Lifecycle ===

    def _open(self) -> sqlite3.Connection:
        """Open the shared connection if it isn't open yet."""
        if self._conn is None:
            try:
                self.data_dir.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(
                    self.db_path,
                    timeout=STORAGE.CONNECT_TIMEOUT_SECONDS,
                    isolation_level=None,  # Autocommit mode, we handle transactions manually
                    check_same_thread=False
                )
                conn.row_factory = sqlite3.Row
            except (OSError, sqlite3.Error) as e:
                logger.error(f"Failed to open database at {self.db_path}: {e}")
                raise StorageError(f"Failed to open database: {e}", {"path": str(self.db_path)})
            self._conn = conn
            logger.info(f"LedgerDatabase opened at {self.db_path}")
        return self._conn

    @contextmanager
    def _connection(self):
        """Yield the shared connection, initializing the schema on first use."""
        with self._lock:
            conn = self._open()
            if not self._initialized:
                self._init_schema(conn)
            yield conn

    @contextmanager
    def _transaction(self, conn: sqlite3.Connection):
        """Explicit transaction: commits on success, rolls back on any error."""
        conn.execute("BEGIN")
        try:
            yield conn
            conn.execute("COMMIT")
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise

    def initialize(self) -> None:
        """Create tables and apply migrations. Safe to call repeatedly."""
        with self._lock:
            self._init_schema(self._open())

    def close(self) -> None:
        """Close the shared connection. The next call reopens it."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                self._initialized = False
                logger.debug("Database connection closed")

    # === Schema Management ===

    def _create_tables(self, conn: sqlite3.Connection) -> None:
        conn.execute(_transactions_ddl(BACKUP.TRANSACTIONS_TABLE))
        conn.execute(USERS_DDL)

    def _init_schema(self, conn: sqlite3.Connection) -> None:
        try:
            self._create_tables(conn)
        except sqlite3.Error as e:
            logger.error(f"Failed to initialize database: {e}")
            raise StorageError(f"Database initialization failed: {e}")
        self._migrate_legacy_currency(conn)
        self._initialized = True
        logger.debug("Database schema initialized")

    @staticmethod
    def _table_columns(conn: sqlite3.Connection, table: str) -> List[str]:
        cursor = conn.execute(f'PRAGMA table_info("{table}")')
        return [row["name"] for row in cursor]

    @staticmethod
    def _table_exists(conn: sqlite3.Connection, table: str) -> bool:
        cursor = conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (table,)
        )
        return cursor.fetchone() is not None

    def _migrate_legacy_currency(self, conn: sqlite3.Connection) -> bool:
        """Rebuild ``transactions`` without the legacy ``currency`` column.

        Returns:
            True if a migration ran, False if the schema was already current.
        """
        if "currency" not in self._table_columns(conn, "transactions"):
            return False

        logger.info("Legacy 'currency' column found on transactions, rebuilding table...")
        columns = ", ".join(TRANSACTION_COLUMNS)
        try:
            with self._transaction(conn):
                conn.execute("DROP TABLE IF EXISTS transactions_migration")
                conn.execute(_transactions_ddl("transactions_migration"))
                conn.execute(
                    f"INSERT INTO transactions_migration ({columns}) "
                    f"SELECT {columns} FROM transactions"
                )
                conn.execute("DROP TABLE transactions")
                conn.execute("ALTER TABLE transactions_migration RENAME TO transactions")
        except sqlite3.Error as e:
            logger.error(f"Currency column migration failed, original table kept: {e}")
            raise StorageError(f"Failed to migrate transactions table: {e}")

        logger.info("Migration complete: 'currency' column removed from transactions")
        return True

    # === Transaction Methods ===

    @staticmethod
    def _validate_amount(amount) -> float:
        try:
            value = float(amount)
        except (TypeError, ValueError):
            raise ValidationError("Amount must be a number", {"amount": amount})
        if not value > 0:
            raise ValidationError("Amount must be positive", {"amount": amount})
        return value

    @staticmethod
    def _validate_date(value: DateLike) -> str:
        try:
            parsed = parse_timestamp(value)
        except (ValueError, OverflowError) as e:
            raise ValidationError(f"Invalid transaction date: {e}", {"date": value})
        if parsed is None:
            raise ValidationError("Transaction date is required")
        return format_timestamp(parsed)

    def add_transaction(self, date: DateLike, category: str, amount: float,
                        kind: Union[TransactionType, str], notes: Optional[str] = None) -> None:
        """Append a transaction to the ledger.

        Args:
            date: When the transaction happened
            category: Free-text category label
            amount: Positive amount; the sign comes from ``kind``
            kind: ``income`` or ``expense`` (enforced by the table constraint)
            notes: Optional free text

        Raises:
            ValidationError: If the amount is not positive or the date is invalid
            StorageError: If the driver rejects the row or no row was inserted
        """
        stored_date = self._validate_date(date)
        value = self._validate_amount(amount)
        type_value = _kind_value(kind)

        with self._connection() as conn:
            try:
                cursor = conn.execute(
                    "INSERT INTO transactions (date, category, amount, type, notes) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (stored_date, category, value, type_value, notes)
                )
            except sqlite3.Error as e:
                logger.error(f"Failed to add transaction: {e}")
                raise StorageError(f"Failed to add transaction: {e}",
                                   {"category": category, "type": type_value})

        if cursor.rowcount == 0:
            logger.error("Insert into transactions affected no rows")
            raise StorageError("Failed to add transaction: no rows affected",
                               {"category": category, "type": type_value})
        logger.debug(f"Added {type_value} transaction {cursor.lastrowid} ({category}: {value})")

    def update_transaction(self, transaction_id: int, date: DateLike, category: str,
                           amount: float, kind: Union[TransactionType, str],
                           notes: Optional[str] = None) -> None:
        """Replace every field of an existing transaction.

        Raises:
            ValidationError: If the amount is not positive or the date is invalid
            StorageError: If the driver fails or no transaction has that id
        """
        stored_date = self._validate_date(date)
        value = self._validate_amount(amount)
        type_value = _kind_value(kind)

        with self._connection() as conn:
            try:
                cursor = conn.execute(
                    "UPDATE transactions SET date = ?, category = ?, amount = ?, type = ?, notes = ? "
                    "WHERE id = ?",
                    (stored_date, category, value, type_value, notes, transaction_id)
                )
            except sqlite3.Error as e:
                logger.error(f"Failed to update transaction {transaction_id}: {e}")
                raise StorageError(f"Failed to update transaction: {e}", {"id": transaction_id})

        if cursor.rowcount == 0:
            raise StorageError("Failed to update transaction: no such transaction",
                               {"id": transaction_id})

    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction. Deleting an unknown id is logged, not raised."""
        with self._connection() as conn:
            try:
                cursor = conn.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))
            except sqlite3.Error as e:
                logger.error(f"Failed to delete transaction {transaction_id}: {e}")
                raise StorageError(f"Failed to delete transaction: {e}", {"id": transaction_id})

        if cursor.rowcount == 0:
            logger.warning(f"Delete requested for unknown transaction id {transaction_id}")
        else:
            logger.debug(f"Deleted transaction {transaction_id}")

    def get_all_transactions(self) -> List[Transaction]:
        """Get every transaction, newest first (date, then id, descending)."""
        columns = ", ".join(TRANSACTION_COLUMNS)
        with self._connection() as conn:
            try:
                cursor = conn.execute(
                    f"SELECT {columns} FROM transactions ORDER BY date DESC, id DESC"
                )
                return [Transaction.from_row(row) for row in cursor]
            except (sqlite3.Error, ValueError) as e:
                logger.error(f"Failed to list transactions: {e}")
                raise StorageError(f"Failed to list transactions: {e}")

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get a single transaction by id."""
        columns = ", ".join(TRANSACTION_COLUMNS)
        with self._connection() as conn:
            try:
                row = conn.execute(
                    f"SELECT {columns} FROM transactions WHERE id = ?", (transaction_id,)
                ).fetchone()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to get transaction: {e}", {"id": transaction_id})
        return Transaction.from_row(row) if row else None

    # === Aggregate Methods ===

    def _scalar(self, sql: str, label: str) -> float:
        with self._connection() as conn:
            try:
                row = conn.execute(sql).fetchone()
            except sqlite3.Error as e:
                logger.error(f"Failed to compute {label}: {e}")
                raise StorageError(f"Failed to compute {label}: {e}")
        return float(row[0])

    def get_total_balance(self) -> float:
        """Total income minus total expense. 0.0 for an empty ledger."""
        return self._scalar("""
            SELECT COALESCE(SUM(CASE
                WHEN type = 'income' THEN amount
                WHEN type = 'expense' THEN -amount
                ELSE 0 END), 0)
            FROM transactions
        """, "total balance")

    def get_total_income(self) -> float:
        """Sum of all income amounts."""
        return self._scalar(
            "SELECT COALESCE(SUM(amount), 0) FROM transactions WHERE type = 'income'",
            "total income"
        )

    def get_total_expense(self) -> float:
        """Sum of all expense amounts."""
        return self._scalar(
            "SELECT COALESCE(SUM(amount), 0) FROM transactions WHERE type = 'expense'",
            "total expense"
        )

    def get_spending_by_category(self) -> List[Dict]:
        """Get expense totals per category, largest first.

        Returns list of {category, total} dicts; empty when there are no expenses.
        """
        with self._connection() as conn:
            try:
                cursor = conn.execute("""
                    SELECT category, SUM(amount) AS total
                    FROM transactions
                    WHERE type = 'expense'
                    GROUP BY category
                    ORDER BY total DESC, category ASC
                """)
                return [
                    {"category": row["category"], "total": float(row["total"])}
                    for row in cursor
                ]
            except sqlite3.Error as e:
                logger.error(f"Failed to get spending by category: {e}")
                raise StorageError(f"Failed to get spending by category: {e}")

    # === Data Management Methods ===

    def _drop_and_recreate(self, conn: sqlite3.Connection) -> None:
        conn.execute("DROP TABLE IF EXISTS transactions")
        conn.execute("DROP TABLE IF EXISTS users")
        self._create_tables(conn)

    def reset_all_data(self) -> None:
        """Drop and recreate both tables.

        Drop and recreate run in one transaction. If they fail, that
        transaction is rolled back and all rows are deleted instead.
        The fallback leaves whatever schema is on disk in place.
        """
        with self._connection() as conn:
            try:
                with self._transaction(conn):
                    self._drop_and_recreate(conn)
                logger.info("All ledger data reset")
                return
            except sqlite3.Error as e:
                logger.warning(f"Drop/recreate failed ({e}), deleting rows instead; schema not repaired")

            try:
                conn.execute("DELETE FROM transactions")
                conn.execute("DELETE FROM users")
            except sqlite3.Error as e:
                logger.error(f"Reset fallback failed: {e}")
                raise StorageError(f"Failed to reset data: {e}")
            logger.info("All ledger rows deleted")

    # === Credential Methods ===

    def is_password_set(self) -> bool:
        """Check whether the credential row exists."""
        with self._connection() as conn:
            try:
                row = conn.execute(
                    "SELECT 1 FROM users WHERE id = ?", (LEDGER.USER_ID,)
                ).fetchone()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to check password: {e}")
        return row is not None

    def set_password(self, password: str) -> None:
        """Create or replace the app password. Stored as a salted hash."""
        if not password:
            raise ValidationError("Password must not be empty")

        hashed = generate_password_hash(password)
        with self._connection() as conn:
            try:
                conn.execute("""
                    INSERT INTO users (id, password) VALUES (?, ?)
                    ON CONFLICT(id) DO UPDATE SET password = excluded.password
                """, (LEDGER.USER_ID, hashed))
            except sqlite3.Error as e:
                logger.error(f"Failed to set password: {e}")
                raise StorageError(f"Failed to set password: {e}")
        logger.info("Password updated")

    def check_password(self, password: str) -> bool:
        """Verify a password against the stored credential.

        Rows written by older versions hold the plain value; those are
        compared in constant time and re-saved as a hash on success.
        """
        with self._connection() as conn:
            try:
                row = conn.execute(
                    "SELECT password FROM users WHERE id = ?", (LEDGER.USER_ID,)
                ).fetchone()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to check password: {e}")

            if row is None:
                return False

            stored = row["password"]
            if _is_password_hash(stored):
                return check_password_hash(stored, password)

            matches = hmac.compare_digest(stored.encode("utf-8"), password.encode("utf-8"))
            if matches:
                logger.info("Upgrading plain-text password to a hash")
                self.set_password(password)
            return matches

    # === Backup/Restore Methods ===

    @staticmethod
    def _validate_backup_id(backup_id: str) -> str:
        if not isinstance(backup_id, str) or not _SAFE_BACKUP_ID.match(backup_id):
            raise ValidationError("Invalid backup id", {"backup_id": backup_id})
        return backup_id

    @staticmethod
    def backup_table_name(table: str, backup_id: str) -> str:
        """Name of the snapshot table for ``table`` under ``backup_id``."""
        return f"{table}{BACKUP.INFIX}{backup_id}"

    def backup_and_reset_all_data(self, now: Optional[datetime] = None) -> str:
        """Snapshot both tables under a new timestamp id, then reset them.

        Args:
            now: Backup time. Defaults to the current time.

        Returns:
            The 14-character backup id (``YYYYMMDDHHMMSS``)

        Raises:
            StorageError: If the snapshot could not be written. Nothing is reset then.
        """
        backup_id = (now or datetime.now()).strftime(BACKUP.ID_FORMAT)

        with self._connection() as conn:
            try:
                with self._transaction(conn):
                    for table in (BACKUP.TRANSACTIONS_TABLE, BACKUP.USERS_TABLE):
                        target = self.backup_table_name(table, backup_id)
                        conn.execute(f'CREATE TABLE "{target}" AS SELECT * FROM {table}')  # nosec B608
            except sqlite3.Error as e:
                logger.error(f"Backup {backup_id} failed: {e}")
                raise StorageError(f"Failed to create backup: {e}", {"backup_id": backup_id})

            logger.info(f"Database backed up as {backup_id}")
            self.reset_all_data()

        return backup_id

    def list_backup_ids(self) -> List[str]:
        """Get ids of all transaction snapshots, newest first."""
        prefix = f"{BACKUP.TRANSACTIONS_TABLE}{BACKUP.INFIX}"
        with self._connection() as conn:
            try:
                cursor = conn.execute(
                    "SELECT name FROM sqlite_master WHERE type = 'table' AND substr(name, 1, ?) = ?",
                    (len(prefix), prefix)
                )
                names = [row["name"] for row in cursor]
            except sqlite3.Error as e:
                logger.error(f"Failed to list backups: {e}")
                raise StorageError(f"Failed to list backups: {e}")

        ids = []
        for name in names:
            backup_id = name[len(prefix):]
            if not _SAFE_BACKUP_ID.match(backup_id):
                logger.warning(f"Ignoring backup table with unusable name '{name}'")
                continue
            ids.append(backup_id)
        return sorted(ids, reverse=True)

    def has_backup(self, backup_id: str) -> bool:
        """Check whether a transaction snapshot exists for ``backup_id``."""
        self._validate_backup_id(backup_id)
        with self._connection() as conn:
            return self._table_exists(
                conn, self.backup_table_name(BACKUP.TRANSACTIONS_TABLE, backup_id)
            )

    def restore_backup(self, backup_id: str) -> List[str]:
        """Replace live rows with the rows of each snapshot table that exists.

        Tables without a snapshot under this id are left untouched. Both
        tables are restored in one transaction.

        Returns:
            Names of the live tables that were restored
        """
        self._validate_backup_id(backup_id)
        restored = []

        with self._connection() as conn:
            try:
                with self._transaction(conn):
                    for table, columns in ((BACKUP.TRANSACTIONS_TABLE, TRANSACTION_COLUMNS),
                                           (BACKUP.USERS_TABLE, USER_COLUMNS)):
                        source = self.backup_table_name(table, backup_id)
                        if not self._table_exists(conn, source):
                            continue

                        available = set(self._table_columns(conn, source))
                        shared = ", ".join(c for c in columns if c in available)
                        conn.execute(f"DELETE FROM {table}")  # nosec B608
                        conn.execute(
                            f'INSERT INTO {table} ({shared}) SELECT {shared} FROM "{source}"'  # nosec B608
                        )
                        restored.append(table)
            except sqlite3.Error as e:
                logger.error(f"Restore of backup {backup_id} failed: {e}")
                raise StorageError(f"Failed to restore backup: {e}", {"backup_id": backup_id})

        logger.info(f"Restored {restored or 'nothing'} from backup {backup_id}")
        return restored

    def delete_backup(self, backup_id: str) -> List[str]:
        """Drop the snapshot tables for ``backup_id``.

        Returns:
            Names of the snapshot tables that were dropped
        """
        self._validate_backup_id(backup_id)
        dropped = []

        with self._connection() as conn:
            try:
                for table in (BACKUP.TRANSACTIONS_TABLE, BACKUP.USERS_TABLE):
                    target = self.backup_table_name(table, backup_id)
                    if self._table_exists(conn, target):
                        conn.execute(f'DROP TABLE "{target}"')
                        dropped.append(target)
            except sqlite3.Error as e:
                logger.error(f"Failed to delete backup {backup_id}: {e}")
                raise StorageError(f"Failed to delete backup: {e}", {"backup_id": backup_id})

        logger.info(f"Deleted backup tables {dropped} for {backup_id}")
        return dropped

    # === Utility Methods ===

    def get_data_file_path(self) -> str:
        """Get the path to the database file."""
        return str(self.db_path)

    def get_database_stats(self) -> Dict:
        """Get statistics about the database.

        Returns:
            Dict with record counts, backup count and file size
        """
        with self._connection() as conn:
            try:
                transactions_count = conn.execute(
                    "SELECT COUNT(*) FROM transactions"
                ).fetchone()[0]
                date_range = conn.execute(
                    "SELECT MIN(date) AS oldest, MAX(date) AS newest FROM transactions"
                ).fetchone()
            except sqlite3.Error as e:
                logger.error(f"Failed to get database stats: {e}")
                raise StorageError(f"Failed to get database stats: {e}")

        backups_count = len(self.list_backup_ids())
        file_size = self.db_path.stat().st_size if self.db_path.exists() else 0

        return {
            "transactions_count": transactions_count,
            "backups_count": backups_count,
            "password_set": self.is_password_set(),
            "oldest_date": date_range["oldest"],
            "newest_date": date_range["newest"],
            "file_size_bytes": file_size,
            "file_size_mb": round(file_size / (1024 * 1024), 2)
        }


# Process-wide instance, created at most once
_default_db: Optional[LedgerDatabase] = None
_default_db_lock = threading.Lock()


def get_database(data_dir: Optional[Path] = None) -> LedgerDatabase:
    """Get or create the shared LedgerDatabase.

    Concurrent first callers block on the same lock and all receive the one
    instance whose schema was initialized. A failed initialization is not
    cached, so the next call tries again.
    """
    global _default_db
    if _default_db is None:
        with _default_db_lock:
            if _default_db is None:
                db = LedgerDatabase(data_dir)
                db.initialize()
                _default_db = db
    return _default_db


def reset_database_instance() -> None:
    """Close and discard the shared instance (useful in tests)."""
    global _default_db
    with _default_db_lock:
        if _default_db is not None:
            _default_db.close()
            _default_db = None
