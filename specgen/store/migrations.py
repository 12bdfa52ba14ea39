"""
Schema migration engine.

Migration units are SQL files named <version>_<description>.sql. The version
is the token before the first underscore and units are ordered
lexicographically by it, so versions are zero-padded ("001", "002", ...).

Each unit runs in one transaction together with the insert of its
migrations row. A failing statement rolls back both, leaving the store at
the previous version.
"""

import logging
import re
import sqlite3
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from specgen.errors import MigrationError
from .entities import MigrationRecord, now_iso

logger = logging.getLogger(__name__)

BUNDLED_MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"

MIGRATIONS_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS migrations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        version TEXT UNIQUE NOT NULL,
        filename TEXT NOT NULL,
        applied_at TEXT NOT NULL
    )
"""

# String literals are matched first so that comment markers or semicolons
# inside quotes are left alone.
_COMMENT_PATTERN = re.compile(
    r"('(?:[^']|'')*'|\"(?:[^\"]|\"\")*\")|(--[^\n]*|/\*.*?\*/)",
    re.DOTALL,
)
_STATEMENT_PATTERN = re.compile(
    r"('(?:[^']|'')*'|\"(?:[^\"]|\"\")*\")|(;)",
    re.DOTALL,
)


@dataclass
class MigrationUnit:
    """One versioned bundle of schema-change statements."""

    version: str
    filename: str
    content: str

    @property
    def statements(self) -> List[str]:
        return split_statements(self.content)


def parse_version(filename: str) -> str:
    """
    Extract the version token from a migration file name.

    "001_initial_schema.sql" -> "001"
    """
    stem = Path(filename).name
    return stem.split("_", 1)[0] if "_" in stem else Path(stem).stem


def strip_comments(sql: str) -> str:
    """Remove -- and /* */ comments, keeping quoted literals intact."""

    def _replace(match: re.Match) -> str:
        if match.group(1) is not None:
            return match.group(1)
        # Keep line structure for block comments spanning lines
        return "\n" if "\n" in match.group(2) else " "

    return _COMMENT_PATTERN.sub(_replace, sql)


def split_statements(sql: str) -> List[str]:
    """
    Split raw migration text into executable statements.

    Comments are stripped before splitting so that a ';' inside a comment
    cannot produce a broken statement. Empty statements are dropped.
    """
    text = strip_comments(sql)

    statements = []
    start = 0
    for match in _STATEMENT_PATTERN.finditer(text):
        if match.group(2) is None:
            continue
        statements.append(text[start:match.start()])
        start = match.end()
    statements.append(text[start:])

    return [s.strip() for s in statements if s.strip()]


class MigrationSource(ABC):
    """Provider of migration units."""

    @abstractmethod
    def units(self) -> List[MigrationUnit]:
        """Return all discoverable units (order not required)."""
        pass


class DirectoryMigrationSource(MigrationSource):
    """Reads *.sql files from a directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def units(self) -> List[MigrationUnit]:
        if not self.directory.exists():
            logger.warning(f"[Migrations] Migration directory not found: {self.directory}")
            return []

        units = []
        for path in self.directory.glob("*.sql"):
            units.append(MigrationUnit(
                version=parse_version(path.name),
                filename=path.name,
                content=path.read_text(encoding="utf-8"),
            ))
        return units


class MigrationEngine:
    """
    Applies ordered, versioned migrations to a SQLite database exactly once.

    Usage:
        engine = MigrationEngine("data/specgen.db")
        applied = engine.migrate()
    """

    def __init__(
        self,
        db_path: str | Path,
        source: Optional[MigrationSource] = None,
        connect: Optional[Callable[[], sqlite3.Connection]] = None,
    ):
        """
        Args:
            db_path: SQLite database file
            source: Migration unit provider (default: bundled migrations)
            connect: Optional connection factory, used instead of db_path
        """
        self.db_path = str(db_path)
        self.source = source or DirectoryMigrationSource(BUNDLED_MIGRATIONS_DIR)
        self._connect = connect

    def _get_connection(self) -> sqlite3.Connection:
        if self._connect is not None:
            conn = self._connect()
        else:
            conn = sqlite3.connect(self.db_path, timeout=30)
        # Transactions are opened explicitly with BEGIN IMMEDIATE below
        conn.isolation_level = None
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(MIGRATIONS_TABLE_SQL)

    def list_applied(self) -> List[str]:
        """Return applied versions in ascending order."""
        return [record.version for record in self.applied_records()]

    def applied_records(self) -> List[MigrationRecord]:
        """Return applied migration rows in ascending version order."""
        conn = self._get_connection()
        try:
            self._ensure_table(conn)
            rows = conn.execute(
                "SELECT version, filename, applied_at FROM migrations ORDER BY version ASC"
            ).fetchall()
        finally:
            conn.close()

        return [
            MigrationRecord(
                version=row["version"],
                filename=row["filename"],
                applied_at=row["applied_at"],
            )
            for row in rows
        ]

    def list_available(self) -> List[MigrationUnit]:
        """Return available units sorted by version."""
        units = self.source.units()

        seen: Dict[str, str] = {}
        for unit in units:
            if unit.version in seen:
                raise MigrationError(
                    unit.version,
                    ValueError(f"duplicate version in {seen[unit.version]} and {unit.filename}"),
                )
            seen[unit.version] = unit.filename

        return sorted(units, key=lambda unit: unit.version)

    def list_pending(self) -> List[MigrationUnit]:
        """Return available units that are not yet applied, in version order."""
        applied = set(self.list_applied())
        return [unit for unit in self.list_available() if unit.version not in applied]

    def apply(self, unit: MigrationUnit) -> bool:
        """
        Apply one unit and record it, atomically.

        Returns:
            True if applied, False if the version was already recorded

        Raises:
            MigrationError: If any statement fails (nothing is kept)
        """
        statements = unit.statements
        conn = self._get_connection()
        try:
            self._ensure_table(conn)
            conn.execute("BEGIN IMMEDIATE")
            try:
                # Another process may have applied it while we waited for the lock
                row = conn.execute(
                    "SELECT 1 FROM migrations WHERE version = ?", (unit.version,)
                ).fetchone()
                if row is not None:
                    conn.execute("ROLLBACK")
                    logger.info(f"[Migrations] {unit.version} already applied, skipping")
                    return False

                for statement in statements:
                    conn.execute(statement)

                conn.execute(
                    "INSERT INTO migrations (version, filename, applied_at) VALUES (?, ?, ?)",
                    (unit.version, unit.filename, now_iso()),
                )
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                logger.error(f"[Migrations] {unit.filename} failed, rolled back: {e}")
                raise MigrationError(unit.version, e) from e
        finally:
            conn.close()

        logger.info(f"[Migrations] Applied {unit.filename} ({len(statements)} statements)")
        return True

    def migrate(self) -> List[str]:
        """
        Apply every pending unit in ascending version order.

        Returns:
            Versions applied by this call (empty when up to date)
        """
        pending = self.list_pending()
        if not pending:
            logger.debug("[Migrations] Schema up to date")
            return []

        logger.info(f"[Migrations] {len(pending)} pending migration(s)")
        applied = []
        for unit in pending:
            if self.apply(unit):
                applied.append(unit.version)
        return applied

    def status(self) -> Dict[str, object]:
        """Summary of applied and pending versions."""
        applied = self.list_applied()
        applied_set = set(applied)
        pending = [unit.version for unit in self.list_available() if unit.version not in applied_set]
        return {
            "applied": applied,
            "pending": pending,
            "current_version": applied[-1] if applied else None,
        }
