"""
Store module - SQLite persistence, schema migrations and settings codec.
"""

from .entities import (
    Category,
    CategoryVisibility,
    ContentStatus,
    GeneratedContent,
    ListValues,
    MigrationRecord,
    Parameter,
    ParameterConfig,
    ParameterType,
    ParameterVisibility,
    Setting,
    SettingDataType,
    ToggleValues,
    ValueOption,
    generate_id,
    parse_parameter_values,
)
from .migrations import (
    DirectoryMigrationSource,
    MigrationEngine,
    MigrationSource,
    MigrationUnit,
    split_statements,
)
from .database import SpecGenStore

__all__ = [
    "Category",
    "CategoryVisibility",
    "ContentStatus",
    "GeneratedContent",
    "ListValues",
    "MigrationRecord",
    "Parameter",
    "ParameterConfig",
    "ParameterType",
    "ParameterVisibility",
    "Setting",
    "SettingDataType",
    "ToggleValues",
    "ValueOption",
    "generate_id",
    "parse_parameter_values",
    "DirectoryMigrationSource",
    "MigrationEngine",
    "MigrationSource",
    "MigrationUnit",
    "split_statements",
    "SpecGenStore",
]
