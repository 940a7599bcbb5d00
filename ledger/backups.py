"""Backup snapshots spanning the relational store and the local store.

A snapshot is identified by a ``YYYYMMDDHHMMSS`` id and consists of up to
three artifacts:

- ``transactions``: the ``transactions_backup_<id>`` table (plus the
  matching ``users_backup_<id>`` table when present)
- ``notes``: the ``financialNotes_backup_<id>`` local-store key
- ``debts``: the ``pocketLedgerDebts_backup_<id>`` local-store key

There is no index of snapshots. They are discovered by scanning table and
key names, and any subset of artifacts is a valid snapshot. Restore and
delete are not atomic across the two stores; each artifact's outcome is
reported on the returned ``BackupOperationResult``.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from config import BACKUP, LOCAL_KEYS, LogContext, get_logger, log_exception
from config.exceptions import BackupError, PocketLedgerError
from ledger.models import BackupInfo
from storage.local_store import LocalStore
from storage.sqlite_store import LedgerDatabase

logger = get_logger(__name__)

ARTIFACT_TRANSACTIONS = "transactions"
ARTIFACT_NOTES = "notes"
ARTIFACT_DEBTS = "debts"

# Local-store artifacts and the live keys they snapshot
LOCAL_ARTIFACTS = (
    (ARTIFACT_NOTES, LOCAL_KEYS.NOTES),
    (ARTIFACT_DEBTS, LOCAL_KEYS.DEBTS),
)


def local_backup_key(key: str, backup_id: str) -> str:
    """Local-store key holding the snapshot of ``key`` under ``backup_id``."""
    return f"{key}{BACKUP.INFIX}{backup_id}"


def parse_backup_id(backup_id: str, now: Optional[datetime] = None) -> datetime:
    """Timestamp encoded in a backup id.

    Ids that don't parse fall back to ``now`` (default: the current time)
    with a warning; this never raises.
    """
    try:
        return datetime.strptime(backup_id, BACKUP.ID_FORMAT)
    except (TypeError, ValueError):
        logger.warning(f"Unparsable backup id '{backup_id}', using current time")
        return now or datetime.now()


@dataclass
class BackupOperationResult:
    """Per-artifact outcome of a restore or delete.

    Attributes:
        backup_id: Snapshot the operation ran against
        succeeded: Artifacts that were processed
        failed: Artifact -> error message, for artifacts that raised
        skipped: Artifacts with no snapshot under this id
    """
    backup_id: str
    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when no artifact failed."""
        return not self.failed

    @property
    def partial(self) -> bool:
        """True when some artifacts succeeded and others failed."""
        return bool(self.succeeded) and bool(self.failed)


class BackupCoordinator:
    """Creates, lists, restores and deletes snapshots across both stores.

    Args:
        database: Relational store holding transactions
        local_store: Key-value store holding notes and debts
    """

    def __init__(self, database: LedgerDatabase, local_store: LocalStore):
        self.database = database
        self.local_store = local_store

    # === Creation ===

    def create_backup_and_reset(self, now: Optional[datetime] = None) -> str:
        """Snapshot everything under a new id, then clear the live data.

        The relational snapshot is taken first; if it fails nothing is
        reset and the local store is not touched. Todos and preferences
        are neither backed up nor cleared.

        Returns:
            The new backup id
        """
        with LogContext(logger, "Backup and reset"):
            backup_id = self.database.backup_and_reset_all_data(now)

            for artifact, key in LOCAL_ARTIFACTS:
                value = self.local_store.get_item(key)
                if value:
                    self.local_store.set_item(local_backup_key(key, backup_id), value)
                    logger.debug(f"Backed up {artifact} to {local_backup_key(key, backup_id)}")
                self.local_store.remove_item(key)

        logger.info(f"Created backup {backup_id} and reset all data")
        return backup_id

    # === Inventory ===

    def _local_backup_ids(self, key: str) -> List[str]:
        prefix = local_backup_key(key, "")
        return [
            name[len(prefix):]
            for name in self.local_store.keys_with_prefix(prefix)
            if len(name) > len(prefix) and self.local_store.get_item(name)
        ]

    def list_backups(self, now: Optional[datetime] = None) -> List[BackupInfo]:
        """Every snapshot found in either store, newest first.

        Ids found in only one store still produce an entry; its flags say
        which artifacts exist.
        """
        relational_ids = set(self.database.list_backup_ids())
        notes_ids = set(self._local_backup_ids(LOCAL_KEYS.NOTES))
        debts_ids = set(self._local_backup_ids(LOCAL_KEYS.DEBTS))

        now = now or datetime.now()
        backups = [
            BackupInfo(
                id=backup_id,
                created_at=parse_backup_id(backup_id, now),
                has_transactions=backup_id in relational_ids,
                has_notes=backup_id in notes_ids,
                has_debts=backup_id in debts_ids,
            )
            for backup_id in relational_ids | notes_ids | debts_ids
        ]
        backups.sort(key=lambda b: (b.created_at, b.id), reverse=True)
        return backups

    def get_backup(self, backup_id: str) -> Optional[BackupInfo]:
        """Inventory entry for one id, or None if no artifact exists."""
        for backup in self.list_backups():
            if backup.id == backup_id:
                return backup
        return None

    def _require_backup(self, backup_id: str) -> BackupInfo:
        backup = self.get_backup(backup_id)
        if backup is None:
            raise BackupError("No backup found", {"backup_id": backup_id})
        return backup

    # === Restore / Delete ===

    def restore_backup(self, backup_id: str) -> BackupOperationResult:
        """Copy each artifact of a snapshot over the live data.

        Artifacts missing from the snapshot leave their live data as is.
        A failure on one artifact does not stop the others.

        Raises:
            BackupError: If no artifact exists for ``backup_id``
        """
        backup = self._require_backup(backup_id)
        result = BackupOperationResult(backup_id)

        with LogContext(logger, f"Restore of backup {backup_id}"):
            if backup.has_transactions:
                try:
                    self.database.restore_backup(backup_id)
                    result.succeeded.append(ARTIFACT_TRANSACTIONS)
                except PocketLedgerError as e:
                    log_exception(logger, f"Restoring transactions from {backup_id} failed", e)
                    result.failed[ARTIFACT_TRANSACTIONS] = str(e)
            else:
                result.skipped.append(ARTIFACT_TRANSACTIONS)

            for artifact, key in LOCAL_ARTIFACTS:
                value = self.local_store.get_item(local_backup_key(key, backup_id))
                if not value:
                    result.skipped.append(artifact)
                    continue
                try:
                    self.local_store.set_item(key, value)
                    result.succeeded.append(artifact)
                except PocketLedgerError as e:
                    log_exception(logger, f"Restoring {artifact} from {backup_id} failed", e)
                    result.failed[artifact] = str(e)

        if result.ok:
            logger.info(f"Restored backup {backup_id}: {result.succeeded}")
        else:
            logger.warning(
                f"Backup {backup_id} restored partially: "
                f"succeeded={result.succeeded} failed={list(result.failed)}"
            )
        return result

    def delete_backup(self, backup_id: str) -> BackupOperationResult:
        """Remove every artifact of a snapshot from both stores.

        Other snapshots are never touched. An id with no artifacts yields a
        result with everything skipped.
        """
        backup = self.get_backup(backup_id)
        result = BackupOperationResult(backup_id)

        with LogContext(logger, f"Delete of backup {backup_id}"):
            if backup is not None and backup.has_transactions:
                try:
                    self.database.delete_backup(backup_id)
                    result.succeeded.append(ARTIFACT_TRANSACTIONS)
                except PocketLedgerError as e:
                    log_exception(logger, f"Deleting transaction tables of {backup_id} failed", e)
                    result.failed[ARTIFACT_TRANSACTIONS] = str(e)
            else:
                result.skipped.append(ARTIFACT_TRANSACTIONS)

            for artifact, key in LOCAL_ARTIFACTS:
                try:
                    if self.local_store.remove_item(local_backup_key(key, backup_id)):
                        result.succeeded.append(artifact)
                    else:
                        result.skipped.append(artifact)
                except PocketLedgerError as e:
                    log_exception(logger, f"Deleting {artifact} of {backup_id} failed", e)
                    result.failed[artifact] = str(e)

        logger.info(f"Deleted backup {backup_id}: {result.succeeded}")
        return result
