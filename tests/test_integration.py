"""Integration tests for PocketLedger.

These tests verify end-to-end behaviour across the relational store, the
local store, the collections and the backup coordinator. They use real
implementations (not mocks).

Run with: pytest -m integration
"""
from datetime import datetime
from pathlib import Path

import pytest

from ledger.backups import BackupCoordinator
from ledger.debts import DebtTracker
from ledger.listing import SortConfig, SortDirection, apply_sort, filter_transactions, paginate
from ledger.models import TransactionType
from ledger.notes import NoteBook
from ledger.todos import TodoList
from storage.local_store import LocalStore
from storage.sqlite_store import LedgerDatabase, get_database


@pytest.mark.integration
class TestLedgerScenario:
    """The add/add/delete walkthrough."""

    def test_food_and_salary(self, integration_data_dir: Path):
        db = LedgerDatabase(data_dir=integration_data_dir)

        db.add_transaction("2024-05-01", "Food", 50, TransactionType.EXPENSE)
        assert db.get_total_expense() == 50.0
        assert db.get_total_balance() == -50.0

        db.add_transaction("2024-05-02", "Salary", 1000, TransactionType.INCOME)
        assert db.get_total_balance() == 950.0

        food = next(t for t in db.get_all_transactions() if t.category == "Food")
        db.delete_transaction(food.id)
        assert db.get_total_balance() == 1000.0
        assert db.get_total_expense() == 0.0
        assert db.get_spending_by_category() == []

        db.close()

    def test_data_survives_reopen(self, integration_data_dir: Path, shared_database_reset):
        """The shared instance and a fresh one see the same file."""
        get_database(integration_data_dir).add_transaction("2024-05-01", "Food", 5, "expense")

        reopened = LedgerDatabase(data_dir=integration_data_dir)
        assert len(reopened.get_all_transactions()) == 1
        reopened.close()

    def test_listing_pipeline(self, integration_data_dir: Path):
        """Filter, sort and paginate stored transactions."""
        db = LedgerDatabase(data_dir=integration_data_dir)
        for day in range(1, 16):
            db.add_transaction(datetime(2024, 5, day), "Food", day, "expense")
        db.add_transaction(datetime(2024, 5, 20), "Salary", 500, "income")

        expenses = filter_transactions(db.get_all_transactions(), kind="expense")
        ordered = apply_sort(expenses, SortConfig("amount", SortDirection.DESCENDING))
        page = paginate(ordered, page=2, page_size=10)

        assert page.total_items == 15
        assert [t.amount for t in page.items] == [5.0, 4.0, 3.0, 2.0, 1.0]
        db.close()


@pytest.mark.integration
class TestBackupIntegration:
    """Backups spanning both stores."""

    @pytest.fixture
    def stores(self, integration_data_dir: Path):
        db = LedgerDatabase(data_dir=integration_data_dir)
        local = LocalStore(data_dir=integration_data_dir)
        yield db, local
        db.close()

    def test_transactions_only_backup_restore(self, stores):
        """Restoring a transactions-only snapshot leaves the collections alone."""
        db, local = stores
        db.add_transaction("2024-05-01", "Food", 50, "expense")
        db.add_transaction("2024-05-02", "Salary", 1000, "income")
        snapshot = [(t.date, t.category, t.amount, t.type, t.notes) for t in db.get_all_transactions()]

        backup_id = db.backup_and_reset_all_data(datetime(2024, 1, 1, 12, 0, 0))
        assert backup_id == "20240101120000"

        notes = NoteBook(local)
        notes.add_note("Keep", "me")
        debts = DebtTracker(local)
        debts.add_debt("Card", "Bank", 500, 50, "2024-06-01")
        todos = TodoList(local)
        todos.add_todo("still here")
        before = {key: local.get_item(key) for key in local.keys()}

        db.add_transaction("2024-07-01", "Other", 3, "expense")

        coordinator = BackupCoordinator(db, local)
        result = coordinator.restore_backup(backup_id)

        assert result.succeeded == ["transactions"]
        assert result.skipped == ["notes", "debts"]
        live = [(t.date, t.category, t.amount, t.type, t.notes) for t in db.get_all_transactions()]
        assert live == snapshot
        assert {key: local.get_item(key) for key in local.keys()} == before

    def test_full_cycle(self, stores):
        """Back up everything, reset, restore and reload the collections."""
        db, local = stores
        db.add_transaction("2024-05-01", "Food", 50, "expense")
        NoteBook(local).add_note("Gold", "two coins", asset_type="Commodities")
        DebtTracker(local).add_debt("Card", "Bank", 500, 50, "2024-06-01")
        coordinator = BackupCoordinator(db, local)

        backup_id = coordinator.create_backup_and_reset(datetime(2024, 3, 1, 8, 0, 0))

        assert NoteBook(local).notes == []
        assert DebtTracker(local).items == []
        assert db.get_total_balance() == 0.0

        info = coordinator.list_backups()[0]
        assert info.id == backup_id
        assert info.artifacts == ["transactions", "notes", "debts"]

        assert coordinator.restore_backup(backup_id).ok
        assert NoteBook(local).notes[0].title == "Gold"
        assert DebtTracker(local).items[0].name == "Card"
        assert db.get_total_balance() == -50.0

    def test_delete_one_of_many(self, stores):
        db, local = stores
        coordinator = BackupCoordinator(db, local)
        ids = []
        for month in (1, 2, 3):
            NoteBook(local).add_note(f"Note {month}", "x")
            ids.append(coordinator.create_backup_and_reset(datetime(2024, month, 1)))

        coordinator.delete_backup(ids[1])

        assert [b.id for b in coordinator.list_backups()] == [ids[2], ids[0]]
        assert local.get_item(f"financialNotes_backup_{ids[0]}") is not None
        assert local.get_item(f"financialNotes_backup_{ids[2]}") is not None
        assert db.list_backup_ids() == [ids[2], ids[0]]

    def test_backups_survive_reopen(self, integration_data_dir: Path):
        db = LedgerDatabase(data_dir=integration_data_dir)
        local = LocalStore(data_dir=integration_data_dir)
        local.set_item("financialNotes", "[]")
        backup_id = BackupCoordinator(db, local).create_backup_and_reset(datetime(2024, 1, 1))
        db.close()

        reopened = BackupCoordinator(
            LedgerDatabase(data_dir=integration_data_dir),
            LocalStore(data_dir=integration_data_dir),
        )
        assert [b.id for b in reopened.list_backups()] == [backup_id]
        reopened.database.close()
