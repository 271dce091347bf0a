# efm_core/database/manager.py
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence

from ..errors import CatalogError
from .init import init_db_if_needed
from .repositories.dat import DatRepository
from .repositories.file_info import FileInfoRepository
from .repositories.file_set import FileSetRepository
from .repositories.file_sync_log import FileSyncLogRepository
from .repositories.release import ReleaseRepository
from .repositories.release_item import ReleaseItemRepository
from .repositories.setting import SettingRepository
from .repositories.software_title import SoftwareTitleRepository
from .repositories.system import SystemRepository

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Owns the SQLite connection of the catalog and hands out repositories."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        init_db_if_needed(self.db_path)
        self.conn = sqlite3.connect(str(self.db_path))
        self.conn.row_factory = sqlite3.Row
        # Pragmas for performance & integrity
        self.conn.execute("PRAGMA foreign_keys=ON;")
        self.conn.execute("PRAGMA journal_mode=WAL;")
        self.conn.execute("PRAGMA synchronous=NORMAL;")

        self.file_infos = FileInfoRepository(self)
        self.file_sets = FileSetRepository(self)
        self.sync_logs = FileSyncLogRepository(self)
        self.releases = ReleaseRepository(self)
        self.release_items = ReleaseItemRepository(self)
        self.software_titles = SoftwareTitleRepository(self)
        self.systems = SystemRepository(self)
        self.dats = DatRepository(self)
        self.settings = SettingRepository(self)

    def get_connection(self) -> sqlite3.Connection:
        return self.conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """One transaction: commits on success, rolls back everything on any error."""
        try:
            with self.conn:
                yield self.conn
        except sqlite3.Error as e:
            raise CatalogError(str(e)) from e

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        try:
            return self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise CatalogError(str(e)) from e

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        try:
            return self.conn.execute(sql, params).fetchone()
        except sqlite3.Error as e:
            raise CatalogError(str(e)) from e

    def close(self) -> None:
        try:
            self.conn.close()
        except sqlite3.Error as e:
            logger.warning("Failed to close database %s: %s", self.db_path, e)
