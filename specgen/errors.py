"""
SpecGen exceptions.

Error taxonomy shared by the store, the migration engine and the
generation pipeline:
- ConfigurationError: missing credential or unusable configuration
- UpstreamGenerationError: text or image provider failure / timeout
- GenerationDisabledError: a generation type switched off in settings
- NotFoundError: entity id/key absent
- ReferentialIntegrityError: parent entity missing on write
- PersistenceIntegrityError: stored data fails to decode per its type
- MigrationError: statement failure during a migration
"""

from typing import Optional


class SpecGenError(Exception):
    """Base exception for all SpecGen errors."""
    pass


class ConfigurationError(SpecGenError):
    """
    Raised when a required credential or setting is missing.

    Fatal to any generation attempt; never retried.
    """
    pass


class UpstreamGenerationError(SpecGenError):
    """Raised when the text or image provider fails."""

    def __init__(self, stage: str, message: str, timeout: bool = False):
        self.stage = stage
        self.timeout = timeout
        prefix = "timed out" if timeout else "failed"
        super().__init__(f"{stage.capitalize()} generation {prefix}: {message}")


class GenerationCancelledError(SpecGenError):
    """Raised when the caller cancelled a generation before it was persisted."""

    def __init__(self, stage: str):
        self.stage = stage
        super().__init__(f"Generation cancelled during {stage} stage")


class GenerationDisabledError(SpecGenError):
    """Raised when a requested generation type is switched off in settings."""

    def __init__(self, setting_key: str):
        self.setting_key = setting_key
        super().__init__(f"Generation disabled by setting {setting_key}")


class NotFoundError(SpecGenError):
    """Raised when a requested entity does not exist."""

    entity = "Entity"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"{self.entity} not found: {key}")


class CategoryNotFoundError(NotFoundError):
    entity = "Category"


class ParameterNotFoundError(NotFoundError):
    entity = "Parameter"


class ContentNotFoundError(NotFoundError):
    entity = "Content"


class SettingNotFoundError(NotFoundError):
    entity = "Setting"


class ImageNotFoundError(NotFoundError):
    entity = "Image"


class ReferentialIntegrityError(NotFoundError):
    """
    Raised when a write references a parent entity that does not exist.

    Example: creating a parameter whose category_id is unknown.
    """

    def __init__(self, entity: str, key: str, child: Optional[str] = None):
        self.entity = entity
        self.child = child
        super().__init__(key)


class ParameterValidationError(SpecGenError):
    """Raised when a parameter's values/config do not match its type."""
    pass


class ContentValidationError(SpecGenError):
    """Raised when a generated content record violates its bounds."""
    pass


class DuplicateEntityError(SpecGenError):
    """Raised when a unique id or name is already taken."""

    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} already exists: {key}")


class PersistenceIntegrityError(SpecGenError):
    """
    Raised when stored data cannot be decoded per its declared type.

    Signals data corruption; never silently coerced.
    """

    def __init__(self, key: str, data_type: str, value: Optional[str]):
        self.key = key
        self.data_type = data_type
        self.value = value
        super().__init__(
            f"Stored value for '{key}' is not valid {data_type}: {value!r}"
        )


class MigrationError(SpecGenError):
    """
    Raised when a migration unit fails.

    The transaction is rolled back in full, so the store stays at the
    previous schema version.
    """

    def __init__(self, version: str, cause: Exception):
        self.version = version
        self.cause = cause
        super().__init__(f"Migration {version} failed: {cause}")
