"""Custody persistence."""

from polo_core.db.client import DatabaseClient
from polo_core.db.store import CustodyStore

__all__ = ["CustodyStore", "DatabaseClient"]
