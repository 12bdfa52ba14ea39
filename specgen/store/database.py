"""
SQLite-backed persistent store for SpecGen.

Provides:
- Generic query / execute / fetch_one primitives
- Typed accessors for categories, parameters, generated content, settings
- Schema creation through the migration engine on first use
- One-time seed import into an empty store

JSON-shaped columns (parameter_values, parameter_config, prompt_data,
metadata) are encoded on write and decoded on read; booleans are stored as
0/1. Lookups that find nothing raise NotFoundError subclasses.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from specgen.errors import (
    CategoryNotFoundError,
    ContentNotFoundError,
    ContentValidationError,
    DuplicateEntityError,
    ImageNotFoundError,
    ParameterNotFoundError,
    ParameterValidationError,
    PersistenceIntegrityError,
    ReferentialIntegrityError,
    SettingNotFoundError,
    SpecGenError,
)
from specgen.infra.config import StoreConfig
from . import settings_codec
from .entities import (
    FICTION_MAX_LENGTH,
    IMAGE_PROMPT_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    Category,
    CategoryVisibility,
    ContentStatus,
    ContentType,
    GeneratedContent,
    Parameter,
    ParameterConfig,
    ParameterType,
    ParameterVisibility,
    Setting,
    SettingDataType,
    now_iso,
    parse_parameter_values,
)
from .migrations import DirectoryMigrationSource, MigrationEngine
from .seed import load_seed_dataset, normalize_category, normalize_parameter

logger = logging.getLogger(__name__)

# Columns returned by listings; blobs are only loaded for single lookups
CONTENT_SUMMARY_COLUMNS = (
    "id, title, fiction_content, type, year, image_format, image_size_bytes, thumbnail_size_bytes, "
    "image_prompt, prompt_data, metadata, generation_time, word_count, status, "
    "error_message, created_at, updated_at"
)

IMAGE_VARIANTS = {
    "original": ("image_blob", "image_size_bytes"),
    "thumbnail": ("image_thumbnail", "thumbnail_size_bytes"),
}

TABLES = ("categories", "parameters", "generated_content", "settings", "migrations")


class SpecGenStore:
    """
    Persistent store for categories, parameters, generated content and settings.

    A connection is opened per operation. Writes go through _transaction(),
    which commits on success and rolls back on any exception.
    """

    def __init__(self, config: StoreConfig, migration_engine: Optional[MigrationEngine] = None):
        """
        Initialize the store and bring its schema up to date.

        Args:
            config: Store configuration (database path, seed data, migrations dir)
            migration_engine: Optional engine override (defaults to one built
                from config.migrations_dir or the bundled migrations)
        """
        self.config = config
        self.db_path = Path(config.db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        if migration_engine is None:
            source = (
                DirectoryMigrationSource(config.migrations_dir)
                if config.migrations_dir else None
            )
            migration_engine = MigrationEngine(self.db_path, source=source)
        self.migrations = migration_engine

        self.initialize()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with WAL mode and foreign keys enabled."""
        conn = sqlite3.connect(str(self.db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for read connections."""
        conn = self._get_connection()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for write transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # =========================================================================
    # Initialization
    # =========================================================================

    def initialize(self) -> None:
        """Create/upgrade the schema and import seed data into an empty store."""
        self.ensure_schema()

        if self.config.seed_data_path and self.count_categories() == 0:
            self.import_seed_file(self.config.seed_data_path)

    def has_schema(self) -> bool:
        """Check whether the core tables exist."""
        row = self.fetch_one(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'categories'"
        )
        return row is not None

    def ensure_schema(self) -> List[str]:
        """
        Apply pending migrations.

        Returns:
            Versions applied by this call
        """
        if not self.has_schema():
            logger.info(f"[Store] No schema found in {self.db_path}, creating")
        applied = self.migrations.migrate()
        if applied:
            logger.info(f"[Store] Applied migrations: {', '.join(applied)}")
        return applied

    def import_seed_file(self, path: Union[str, Path]) -> Dict[str, int]:
        """Load and import a seed dataset file. Load failures import nothing."""
        dataset = load_seed_dataset(Path(path))
        if dataset is None:
            return {"categories": 0, "parameters": 0}
        return self.import_seed_data(dataset)

    def import_seed_data(self, dataset: Dict[str, List[Dict[str, Any]]]) -> Dict[str, int]:
        """
        Import categories then parameters from a dataset.

        Invalid or conflicting entries are logged and skipped.

        Returns:
            Count of imported categories and parameters
        """
        imported = {"categories": 0, "parameters": 0}

        for raw in dataset.get("categories", []):
            try:
                self.create_category(**normalize_category(raw))
                imported["categories"] += 1
            except (SpecGenError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"[Store] Skipping seed category {raw.get('id') or raw.get('name')}: {e}")

        for raw in dataset.get("parameters", []):
            try:
                self.create_parameter(**normalize_parameter(raw))
                imported["parameters"] += 1
            except (SpecGenError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"[Store] Skipping seed parameter {raw.get('id') or raw.get('name')}: {e}")

        logger.info(
            f"[Store] Seed import: {imported['categories']} categories, "
            f"{imported['parameters']} parameters"
        )
        return imported

    # =========================================================================
    # Generic primitives
    # =========================================================================

    def query(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """Run a SELECT and return all rows as dicts."""
        with self._connection() as conn:
            rows = conn.execute(sql, tuple(params)).fetchall()
        return [dict(row) for row in rows]

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        """Run a SELECT and return the first row, or None."""
        with self._connection() as conn:
            row = conn.execute(sql, tuple(params)).fetchone()
        return dict(row) if row is not None else None

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a write statement in its own transaction. Returns rowcount."""
        with self._transaction() as conn:
            cursor = conn.execute(sql, tuple(params))
            return cursor.rowcount

    # =========================================================================
    # Category Operations
    # =========================================================================

    def _row_to_category(self, row: sqlite3.Row) -> Category:
        return Category(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            visibility=CategoryVisibility(row["visibility"]),
            year=row["year"],
            sort_order=row["sort_order"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def count_categories(self) -> int:
        row = self.fetch_one("SELECT COUNT(*) AS count FROM categories")
        return row["count"] if row else 0

    def list_categories(self, include_hidden: bool = True) -> List[Category]:
        """List categories ordered by sort_order then name."""
        sql = "SELECT * FROM categories"
        if not include_hidden:
            sql += " WHERE visibility = 'Show'"
        sql += " ORDER BY sort_order ASC, name ASC"

        with self._connection() as conn:
            rows = conn.execute(sql).fetchall()
        return [self._row_to_category(row) for row in rows]

    def get_category(self, category_id: str) -> Category:
        """Get a category by id. Raises CategoryNotFoundError."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM categories WHERE id = ?", (category_id,)
            ).fetchone()

        if row is None:
            raise CategoryNotFoundError(category_id)
        return self._row_to_category(row)

    def create_category(
        self,
        name: str,
        description: str = "",
        visibility: Union[str, CategoryVisibility] = CategoryVisibility.SHOW,
        year: Optional[int] = None,
        sort_order: int = 0,
        category_id: Optional[str] = None,
    ) -> Category:
        """Create a category. Raises DuplicateEntityError on id/name conflict."""
        category = Category.create(
            name=name,
            description=description,
            visibility=visibility,
            year=year,
            sort_order=sort_order,
            category_id=category_id,
        )
        if not category.id:
            raise ValueError(f"Cannot derive a category id from name: {name!r}")

        try:
            with self._transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO categories
                    (id, name, description, visibility, year, sort_order, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        category.id,
                        category.name,
                        category.description,
                        category.visibility.value,
                        category.year,
                        category.sort_order,
                        category.created_at,
                        category.updated_at,
                    ),
                )
        except sqlite3.IntegrityError:
            raise DuplicateEntityError("Category", category.id)

        logger.info(f"[Store] Created category {category.id}")
        return category

    def update_category(
        self,
        category_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        visibility: Optional[Union[str, CategoryVisibility]] = None,
        year: Optional[int] = None,
        sort_order: Optional[int] = None,
    ) -> Category:
        """Update a category. The id never changes."""
        self.get_category(category_id)

        updates = []
        values: List[Any] = []

        if name is not None:
            updates.append("name = ?")
            values.append(name)
        if description is not None:
            updates.append("description = ?")
            values.append(description)
        if visibility is not None:
            updates.append("visibility = ?")
            values.append(CategoryVisibility(visibility).value)
        if year is not None:
            updates.append("year = ?")
            values.append(year)
        if sort_order is not None:
            updates.append("sort_order = ?")
            values.append(sort_order)

        if updates:
            updates.append("updated_at = ?")
            values.append(now_iso())
            values.append(category_id)

            try:
                with self._transaction() as conn:
                    conn.execute(
                        f"UPDATE categories SET {', '.join(updates)} WHERE id = ?",
                        values,
                    )
            except sqlite3.IntegrityError:
                raise DuplicateEntityError("Category", name or category_id)

        return self.get_category(category_id)

    def delete_category(self, category_id: str) -> None:
        """Delete a category and, by cascade, its parameters."""
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM categories WHERE id = ?", (category_id,))
            if cursor.rowcount == 0:
                raise CategoryNotFoundError(category_id)
        logger.info(f"[Store] Deleted category {category_id}")

    # =========================================================================
    # Parameter Operations
    # =========================================================================

    def _row_to_parameter(self, row: sqlite3.Row) -> Parameter:
        try:
            raw_values = json.loads(row["parameter_values"]) if row["parameter_values"] else None
            raw_config = json.loads(row["parameter_config"]) if row["parameter_config"] else None
            values = parse_parameter_values(raw_values)
            config = ParameterConfig.from_dict(raw_config)
        except (ValueError, ParameterValidationError):
            raise PersistenceIntegrityError(
                f"parameters.{row['id']}", "json", row["parameter_values"]
            )

        return Parameter(
            id=row["id"],
            name=row["name"],
            type=ParameterType(row["type"]),
            category_id=row["category_id"],
            description=row["description"],
            visibility=ParameterVisibility(row["visibility"]),
            required=bool(row["required"]),
            sort_order=row["sort_order"],
            parameter_values=values,
            parameter_config=config,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _encode_parameter_json(self, parameter: Parameter) -> Tuple[Optional[str], Optional[str]]:
        values = (
            json.dumps(parameter.parameter_values.to_json())
            if parameter.parameter_values is not None else None
        )
        config = (
            json.dumps(parameter.parameter_config.to_dict())
            if parameter.parameter_config is not None and not parameter.parameter_config.is_empty()
            else None
        )
        return values, config

    def _require_category(self, conn: sqlite3.Connection, category_id: str, child: str) -> None:
        row = conn.execute("SELECT 1 FROM categories WHERE id = ?", (category_id,)).fetchone()
        if row is None:
            raise ReferentialIntegrityError("Category", category_id, child=child)

    def list_parameters(
        self,
        category_id: Optional[str] = None,
        visibility: Optional[Union[str, ParameterVisibility]] = None,
    ) -> List[Parameter]:
        """List parameters, optionally filtered by category and visibility."""
        conditions = []
        values: List[Any] = []

        if category_id is not None:
            conditions.append("category_id = ?")
            values.append(category_id)
        if visibility is not None:
            conditions.append("visibility = ?")
            values.append(ParameterVisibility(visibility).value)

        sql = "SELECT * FROM parameters"
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        sql += " ORDER BY category_id ASC, sort_order ASC, name ASC"

        with self._connection() as conn:
            rows = conn.execute(sql, values).fetchall()
        return [self._row_to_parameter(row) for row in rows]

    def get_parameter(self, parameter_id: str) -> Parameter:
        """Get a parameter by id. Raises ParameterNotFoundError."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM parameters WHERE id = ?", (parameter_id,)
            ).fetchone()

        if row is None:
            raise ParameterNotFoundError(parameter_id)
        return self._row_to_parameter(row)

    def create_parameter(
        self,
        name: str,
        type: Union[str, ParameterType],
        category_id: str,
        description: str = "",
        visibility: Union[str, ParameterVisibility] = ParameterVisibility.BASIC,
        required: bool = False,
        sort_order: int = 0,
        parameter_values: Any = None,
        parameter_config: Any = None,
        parameter_id: Optional[str] = None,
    ) -> Parameter:
        """
        Create a parameter under an existing category.

        Raises:
            ParameterValidationError: If values/config do not match the type
            ReferentialIntegrityError: If the category does not exist
            DuplicateEntityError: If the parameter id is taken
        """
        parameter = Parameter.create(
            name=name,
            type=type,
            category_id=category_id,
            description=description,
            visibility=visibility,
            required=required,
            sort_order=sort_order,
            parameter_values=parameter_values,
            parameter_config=parameter_config,
            parameter_id=parameter_id,
        )
        values_json, config_json = self._encode_parameter_json(parameter)

        try:
            with self._transaction() as conn:
                self._require_category(conn, category_id, child=parameter.id)
                conn.execute(
                    """
                    INSERT INTO parameters
                    (id, name, description, type, visibility, category_id, required,
                     sort_order, parameter_values, parameter_config, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        parameter.id,
                        parameter.name,
                        parameter.description,
                        parameter.type.value,
                        parameter.visibility.value,
                        parameter.category_id,
                        1 if parameter.required else 0,
                        parameter.sort_order,
                        values_json,
                        config_json,
                        parameter.created_at,
                        parameter.updated_at,
                    ),
                )
        except sqlite3.IntegrityError:
            raise DuplicateEntityError("Parameter", parameter.id)

        logger.info(f"[Store] Created parameter {parameter.id} in {category_id}")
        return parameter

    def update_parameter(
        self,
        parameter_id: str,
        name: Optional[str] = None,
        type: Optional[Union[str, ParameterType]] = None,
        category_id: Optional[str] = None,
        description: Optional[str] = None,
        visibility: Optional[Union[str, ParameterVisibility]] = None,
        required: Optional[bool] = None,
        sort_order: Optional[int] = None,
        parameter_values: Any = None,
        parameter_config: Any = None,
    ) -> Parameter:
        """
        Update a parameter. The merged result is re-validated before writing.

        Raises:
            ParameterNotFoundError: If the parameter does not exist
            ReferentialIntegrityError: If re-parented to a missing category
            ParameterValidationError: If the merged shape is invalid
        """
        current = self.get_parameter(parameter_id)

        try:
            merged = Parameter(
                id=current.id,
                name=name if name is not None else current.name,
                type=ParameterType(type) if type is not None else current.type,
                category_id=category_id if category_id is not None else current.category_id,
                description=description if description is not None else current.description,
                visibility=(
                    ParameterVisibility(visibility) if visibility is not None else current.visibility
                ),
                required=required if required is not None else current.required,
                sort_order=sort_order if sort_order is not None else current.sort_order,
                parameter_values=(
                    parse_parameter_values(parameter_values)
                    if parameter_values is not None else current.parameter_values
                ),
                parameter_config=(
                    ParameterConfig.from_dict(parameter_config)
                    if parameter_config is not None else current.parameter_config
                ),
                created_at=current.created_at,
                updated_at=now_iso(),
            )
        except ValueError as e:
            raise ParameterValidationError(str(e))
        merged.validate()
        values_json, config_json = self._encode_parameter_json(merged)

        with self._transaction() as conn:
            self._require_category(conn, merged.category_id, child=parameter_id)
            conn.execute(
                """
                UPDATE parameters SET
                    name = ?, description = ?, type = ?, visibility = ?, category_id = ?,
                    required = ?, sort_order = ?, parameter_values = ?, parameter_config = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    merged.name,
                    merged.description,
                    merged.type.value,
                    merged.visibility.value,
                    merged.category_id,
                    1 if merged.required else 0,
                    merged.sort_order,
                    values_json,
                    config_json,
                    merged.updated_at,
                    parameter_id,
                ),
            )

        return merged

    def delete_parameter(self, parameter_id: str) -> None:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM parameters WHERE id = ?", (parameter_id,))
            if cursor.rowcount == 0:
                raise ParameterNotFoundError(parameter_id)

    # =========================================================================
    # Generated Content Operations
    # =========================================================================

    def _decode_json_column(self, row: sqlite3.Row, column: str) -> Dict[str, Any]:
        raw = row[column]
        if not raw:
            return {}
        try:
            return json.loads(raw)
        except ValueError:
            raise PersistenceIntegrityError(f"generated_content.{row['id']}.{column}", "json", raw)

    def _row_to_content(self, row: sqlite3.Row) -> GeneratedContent:
        keys = row.keys()
        return GeneratedContent(
            id=row["id"],
            title=row["title"],
            fiction_content=row["fiction_content"],
            type=ContentType(row["type"]) if row["type"] else None,
            year=row["year"],
            image_blob=row["image_blob"] if "image_blob" in keys else None,
            image_thumbnail=row["image_thumbnail"] if "image_thumbnail" in keys else None,
            image_format=row["image_format"],
            image_size_bytes=row["image_size_bytes"],
            thumbnail_size_bytes=row["thumbnail_size_bytes"],
            image_prompt=row["image_prompt"],
            prompt_data=self._decode_json_column(row, "prompt_data"),
            metadata=self._decode_json_column(row, "metadata"),
            generation_time=row["generation_time"],
            word_count=row["word_count"],
            status=ContentStatus(row["status"]),
            error_message=row["error_message"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _validate_content(self, content: GeneratedContent) -> None:
        if not content.title:
            raise ContentValidationError("title is required")
        if len(content.title) > TITLE_MAX_LENGTH:
            raise ContentValidationError(f"title exceeds {TITLE_MAX_LENGTH} characters")
        if len(content.fiction_content) > FICTION_MAX_LENGTH:
            raise ContentValidationError(f"fiction_content exceeds {FICTION_MAX_LENGTH} characters")
        if content.image_prompt is not None and len(content.image_prompt) > IMAGE_PROMPT_MAX_LENGTH:
            raise ContentValidationError(f"image_prompt exceeds {IMAGE_PROMPT_MAX_LENGTH} characters")
        if content.type is not None:
            try:
                ContentType(content.type)
            except ValueError:
                raise ContentValidationError(f"unknown content type: {content.type!r}")
        if content.year is not None and (isinstance(content.year, bool) or not isinstance(content.year, int)):
            raise ContentValidationError(f"year must be an integer: {content.year!r}")
        if content.generation_time < 0 or content.word_count < 0:
            raise ContentValidationError("generation_time and word_count must be non-negative")
        if content.image_blob is None and content.image_size_bytes:
            raise ContentValidationError("image_size_bytes set without an image blob")
        if content.image_blob is not None and content.image_size_bytes != len(content.image_blob):
            raise ContentValidationError("image_size_bytes does not match image blob")

    def create_content(self, content: GeneratedContent) -> GeneratedContent:
        """
        Persist a generated content record. Records are never updated afterwards.

        Raises:
            ContentValidationError: If bounds are violated
        """
        self._validate_content(content)

        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO generated_content
                (id, title, fiction_content, type, year, image_blob, image_thumbnail, image_format,
                 image_size_bytes, thumbnail_size_bytes, image_prompt, prompt_data, metadata,
                 generation_time, word_count, status, error_message, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    content.id,
                    content.title,
                    content.fiction_content,
                    ContentType(content.type).value if content.type else None,
                    content.year,
                    content.image_blob,
                    content.image_thumbnail,
                    content.image_format,
                    content.image_size_bytes,
                    content.thumbnail_size_bytes,
                    content.image_prompt,
                    json.dumps(content.prompt_data, ensure_ascii=False),
                    json.dumps(content.metadata, ensure_ascii=False),
                    content.generation_time,
                    content.word_count,
                    ContentStatus(content.status).value,
                    content.error_message,
                    content.created_at,
                    content.updated_at,
                ),
            )

        logger.info(f"[Store] Saved content {content.id} ({ContentStatus(content.status).value})")
        return content

    def get_content(self, content_id: str, include_blobs: bool = True) -> GeneratedContent:
        """Get a content record by id. Raises ContentNotFoundError."""
        columns = "*" if include_blobs else CONTENT_SUMMARY_COLUMNS
        with self._connection() as conn:
            row = conn.execute(
                f"SELECT {columns} FROM generated_content WHERE id = ?", (content_id,)
            ).fetchone()

        if row is None:
            raise ContentNotFoundError(content_id)
        return self._row_to_content(row)

    def _content_filters(
        self,
        status: Optional[Union[str, ContentStatus]] = None,
        content_type: Optional[Union[str, ContentType]] = None,
        year: Optional[int] = None,
    ) -> Tuple[str, List[Any]]:
        conditions = []
        values: List[Any] = []

        if status is not None:
            conditions.append("status = ?")
            values.append(ContentStatus(status).value)
        if content_type is not None:
            conditions.append("type = ?")
            values.append(ContentType(content_type).value)
        if year is not None:
            conditions.append("year = ?")
            values.append(year)

        where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
        return where, values

    def list_recent_content(
        self,
        limit: int = 20,
        offset: int = 0,
        status: Optional[Union[str, ContentStatus]] = None,
        content_type: Optional[Union[str, ContentType]] = None,
        year: Optional[int] = None,
    ) -> List[GeneratedContent]:
        """List content newest first, without image blobs."""
        where, values = self._content_filters(status, content_type, year)
        sql = (
            f"SELECT {CONTENT_SUMMARY_COLUMNS} FROM generated_content{where} "
            "ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?"
        )

        with self._connection() as conn:
            rows = conn.execute(sql, values + [limit, offset]).fetchall()
        return [self._row_to_content(row) for row in rows]

    def count_content(
        self,
        status: Optional[Union[str, ContentStatus]] = None,
        content_type: Optional[Union[str, ContentType]] = None,
        year: Optional[int] = None,
    ) -> int:
        where, values = self._content_filters(status, content_type, year)
        row = self.fetch_one(f"SELECT COUNT(*) AS count FROM generated_content{where}", values)
        return row["count"] if row else 0

    def list_available_years(self) -> List[int]:
        """Distinct story years that have content, ascending."""
        rows = self.query(
            "SELECT DISTINCT year FROM generated_content WHERE year IS NOT NULL ORDER BY year"
        )
        return [row["year"] for row in rows]

    def get_image(self, content_id: str, variant: str = "original") -> Tuple[bytes, str]:
        """
        Get stored image bytes for a content record.

        Args:
            content_id: Content id
            variant: "original" or "thumbnail"

        Returns:
            (image bytes, image format)
        """
        if variant not in IMAGE_VARIANTS:
            raise ValueError(f"Unknown image variant: {variant}")
        blob_column, size_column = IMAGE_VARIANTS[variant]

        with self._connection() as conn:
            row = conn.execute(
                f"SELECT {blob_column} AS data, {size_column} AS size, image_format "
                "FROM generated_content WHERE id = ?",
                (content_id,),
            ).fetchone()

        if row is None:
            raise ContentNotFoundError(content_id)
        if row["data"] is None or not row["size"]:
            raise ImageNotFoundError(f"{content_id}/{variant}")
        return bytes(row["data"]), row["image_format"]

    def content_to_response(self, content: GeneratedContent) -> Dict[str, Any]:
        """Serializable view of a record: no blobs, plus derived image URLs."""
        data = {
            "id": content.id,
            "title": content.title,
            "fiction_content": content.fiction_content,
            "type": ContentType(content.type).value if content.type else None,
            "year": content.year,
            "image_format": content.image_format,
            "image_size_bytes": content.image_size_bytes,
            "thumbnail_size_bytes": content.thumbnail_size_bytes,
            "image_prompt": content.image_prompt,
            "prompt_data": content.prompt_data,
            "metadata": content.metadata,
            "generation_time": content.generation_time,
            "word_count": content.word_count,
            "status": content.status.value,
            "error_message": content.error_message,
            "created_at": content.created_at,
            "updated_at": content.updated_at,
        }
        data.update(content.image_urls())
        return data

    # =========================================================================
    # Settings Operations
    # =========================================================================

    def _row_to_setting(self, row: sqlite3.Row) -> Setting:
        try:
            data_type = SettingDataType(row["data_type"])
        except ValueError:
            data_type = SettingDataType.STRING
        return Setting(
            key=row["key"],
            value=row["value"],
            data_type=data_type,
            description=row["description"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def list_settings(self) -> List[Setting]:
        with self._connection() as conn:
            rows = conn.execute("SELECT * FROM settings ORDER BY key ASC").fetchall()
        return [self._row_to_setting(row) for row in rows]

    def get_setting_record(self, key: str) -> Setting:
        """Get the stored setting row. Raises SettingNotFoundError."""
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM settings WHERE key = ?", (key,)).fetchone()
        if row is None:
            raise SettingNotFoundError(key)
        return self._row_to_setting(row)

    def get_setting(self, key: str) -> Any:
        """Get a decoded setting value. Raises SettingNotFoundError."""
        return settings_codec.decode(self.get_setting_record(key))

    def get_settings_dict(self) -> Dict[str, Any]:
        """All settings as {key: decoded value}."""
        return {setting.key: settings_codec.decode(setting) for setting in self.list_settings()}

    def set_setting(
        self,
        key: str,
        value: Any,
        data_type: Union[str, SettingDataType] = SettingDataType.STRING,
        description: Optional[str] = None,
    ) -> Setting:
        """Insert or update a setting by key."""
        tag = SettingDataType(data_type)
        encoded = settings_codec.encode(value, tag)
        timestamp = now_iso()

        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO settings (key, value, data_type, description, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    data_type = excluded.data_type,
                    description = COALESCE(?, settings.description),
                    updated_at = excluded.updated_at
                """,
                (key, encoded, tag.value, description or "", timestamp, timestamp, description),
            )

        return self.get_setting_record(key)

    def delete_setting(self, key: str) -> None:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM settings WHERE key = ?", (key,))
            if cursor.rowcount == 0:
                raise SettingNotFoundError(key)

    # =========================================================================
    # Status
    # =========================================================================

    def database_status(self) -> Dict[str, Any]:
        """Row counts, schema version and file information."""
        counts = {}
        with self._connection() as conn:
            for table in TABLES:
                counts[table] = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]

        migration_status = self.migrations.status()
        return {
            "db_path": str(self.db_path),
            "size_bytes": self.db_path.stat().st_size if self.db_path.exists() else 0,
            "schema_version": migration_status["current_version"],
            "pending_migrations": migration_status["pending"],
            "tables": counts,
        }
