"""Pydantic models for engine configuration."""

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class ProfileConfig(BaseModel):
    """Database connection profile from catalog.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: str = "postgres"


class Capabilities(BaseModel):
    """Read-only driver capability flags that gate queries and DDL clauses.

    Example:
        >>> caps = Capabilities(supports_indexes=False)
        >>> caps.supports_referential_integrity
        True
    """

    supports_referential_integrity: bool = True
    supports_indexes: bool = True
    supports_row_count: bool = True
    supports_reuse_oid: bool = True
    drop_column_short: bool = False  # ALTER TABLE t DROP c
    drop_column_brackets: bool = False  # ALTER TABLE t DROP COLUMN (c)
    alter_table_add_column: bool = True  # ALTER TABLE t ADD COLUMN c ...


class DialectSettings(BaseModel):
    """Textual conventions of the target SQL dialect."""

    line_separator: str = "\n"
    single_line_comment: str = "--"
    identifier_quote: str = '"'


class EngineConfig(BaseModel):
    """Complete engine configuration from catalog.toml."""

    profiles: dict[str, ProfileConfig] = Field(default_factory=dict)
    capabilities: Capabilities = Field(default_factory=Capabilities)
    dialect: DialectSettings = Field(default_factory=DialectSettings)
    default_schema: str = "public"
