"""Pytest configuration and shared fixtures.

This module provides:
- Common test fixtures for data directories, stores and sample data
- Pytest markers for test categorization (unit, integration, slow)
"""
import json
import sqlite3
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Generator

import pytest


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: mark test as a unit test (fast, isolated)")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# =============================================================================
# Directory and Path Fixtures
# =============================================================================


@pytest.fixture
def temp_data_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test data."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_db_path(temp_data_dir: Path) -> Path:
    """Path of the ledger database inside the temporary directory."""
    return temp_data_dir / "pocketledger.db"


@pytest.fixture
def temp_local_store_path(temp_data_dir: Path) -> Path:
    """Path of the local store file inside the temporary directory."""
    return temp_data_dir / "local_storage.json"


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def database(temp_data_dir: Path):
    """A LedgerDatabase in the temporary directory, closed afterwards."""
    from storage.sqlite_store import LedgerDatabase

    db = LedgerDatabase(data_dir=temp_data_dir)
    yield db
    db.close()


@pytest.fixture
def local_store(temp_data_dir: Path):
    """A LocalStore in the temporary directory."""
    from storage.local_store import LocalStore

    return LocalStore(data_dir=temp_data_dir)


@pytest.fixture
def shared_database_reset() -> Generator[None, None, None]:
    """Discard the process-wide database before and after the test."""
    from storage.sqlite_store import reset_database_instance

    reset_database_instance()
    yield
    reset_database_instance()


# =============================================================================
# Sample Data Fixtures
# =============================================================================


@pytest.fixture
def sample_note_data() -> dict[str, Any]:
    """A note as the browser build stored it."""
    return {
        "id": "1714550400000",
        "title": "Gold purchase",
        "content": "Bought some gold coins",
        "assetType": "Gold",
        "quantity": 2,
        "purchasePrice": 2150.5,
        "purchaseDate": "2024-05-01T00:00:00.000Z",
        "createdAt": "2024-05-01T09:30:00.000Z",
    }


@pytest.fixture
def sample_debt_data() -> dict[str, Any]:
    """A debt with one payment, as the browser build stored it."""
    return {
        "id": "1714550400001",
        "name": "Visa card",
        "lender": "Big Bank",
        "initialAmount": 1000,
        "currentBalance": 750,
        "interestRate": 3.5,
        "minimumPayment": 100,
        "paymentFrequency": "Monthly",
        "nextDueDate": "2024-06-01T00:00:00.000Z",
        "debtType": "Credit Card",
        "startDate": None,
        "notes": None,
        "payments": [
            {
                "id": "1714550400002",
                "paymentDate": "2024-05-10T00:00:00.000Z",
                "amountPaid": 250,
                "notes": "first payment",
            }
        ],
        "createdAt": "2024-05-01T09:30:00.000Z",
        "isPaidOff": False,
    }


@pytest.fixture
def sample_todo_data() -> dict[str, Any]:
    """A completed todo as the browser build stored it."""
    return {
        "id": "1714550400003",
        "text": "Pay rent",
        "isCompleted": True,
        "createdAt": "2024-05-01T09:30:00.000Z",
        "completedAt": "2024-05-02T10:00:00.000Z",
    }


@pytest.fixture
def populated_local_store(temp_local_store_path: Path, sample_note_data: dict,
                          sample_debt_data: dict, sample_todo_data: dict) -> Path:
    """Write a local store file holding one note, debt and todo."""
    data = {
        "financialNotes": json.dumps([sample_note_data]),
        "pocketLedgerDebts": json.dumps([sample_debt_data]),
        "pocketLedgerTodos": json.dumps([sample_todo_data]),
        "darkMode": "false",
        "selectedCurrencyCode": "USD",
    }
    with open(temp_local_store_path, "w") as f:
        json.dump(data, f)
    return temp_local_store_path


@pytest.fixture
def backup_time() -> datetime:
    """Timestamp that produces backup id 20240101120000."""
    return datetime(2024, 1, 1, 12, 0, 0)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def legacy_database(temp_db_path: Path) -> Path:
    """Database file whose transactions table still has a currency column."""
    conn = sqlite3.connect(str(temp_db_path))
    conn.execute("""
        CREATE TABLE transactions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            date TEXT NOT NULL,
            category TEXT NOT NULL,
            amount REAL NOT NULL,
            type TEXT NOT NULL CHECK(type IN ('income', 'expense')),
            currency TEXT NOT NULL DEFAULT 'TRY',
            notes TEXT
        )
    """)
    conn.executemany(
        "INSERT INTO transactions (date, category, amount, type, currency, notes) "
        "VALUES (?, ?, ?, ?, ?, ?)",
        [
            ("2024-03-01T00:00:00", "Salary", 3000.0, "income", "TRY", None),
            ("2024-03-02T00:00:00", "Food", 45.5, "expense", "USD", "groceries"),
        ],
    )
    conn.commit()
    conn.close()
    return temp_db_path


# =============================================================================
# Integration Test Fixtures
# =============================================================================


@pytest.fixture
def integration_data_dir(tmp_path: Path) -> Path:
    """Create a complete data directory structure for integration tests."""
    data_dir = tmp_path / ".pocket-ledger"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir
