"""Ledger records, collections and the backup coordinator.

Submodules are imported directly (``from ledger.notes import NoteBook``);
the storage package depends on ``ledger.models``, so nothing is re-exported
here.
"""
