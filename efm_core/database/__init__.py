"""Catalog storage for the collection core."""

from .manager import DatabaseManager
from .init import init_db_if_needed

__all__ = ['DatabaseManager', 'init_db_if_needed']
