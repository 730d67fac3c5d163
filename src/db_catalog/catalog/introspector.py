"""PostgreSQL catalog source via information_schema and pg_catalog.

Each query aliases its result columns to the JDBC-style catalog names the
row decoder understands (``TABLE_NAME``, ``FKCOLUMN_NAME``, ``KEY_SEQ`` ...),
so the loader treats PostgreSQL like any other catalog backend.

Uses psycopg (v3) for PostgreSQL connections.
"""

import logging
from collections.abc import Mapping
from typing import Any

import psycopg
from psycopg import Connection, sql
from psycopg.rows import dict_row

from db_catalog.exceptions import CatalogError, FeatureNotSupportedError
from db_catalog.schema.models import Table

logger = logging.getLogger(__name__)

# pg_constraint confupdtype/confdeltype -> DatabaseMetaData importedKey* code
_RULE_CODE_SQL = """CASE {col}
        WHEN 'c' THEN 0
        WHEN 'r' THEN 1
        WHEN 'n' THEN 2
        WHEN 'a' THEN 3
        WHEN 'd' THEN 4
    END"""


class InformationSchemaSource:
    """``CatalogSource`` backed by a live PostgreSQL connection.

    Works with any PostgreSQL database (RDS, Supabase, local).  Every fetch
    drains its cursor before returning, so callers may issue nested queries.

    Usage:
        with InformationSchemaSource(database_url) as source:
            loader = SchemaLoader(source)
            results = loader.load_container(None, "public")
    """

    # Tables to exclude from introspection (system tables)
    EXCLUDED_TABLES = {
        "schema_migrations",
        "pg_stat_statements",
        "spatial_ref_sys",
    }

    def __init__(self, database_url: str, connect_timeout: int = 10):
        """Initialize with database connection URL.

        Args:
            database_url: PostgreSQL connection URL
            connect_timeout: Seconds to wait for the connection
        """
        self._database_url = database_url
        self._connect_timeout = connect_timeout
        self._conn: Connection | None = None

    def __enter__(self) -> "InformationSchemaSource":
        """Context manager entry - opens connection."""
        # Append connect_timeout if not already in URL
        url = self._database_url
        if "connect_timeout" not in url:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}connect_timeout={self._connect_timeout}"

        try:
            self._conn = psycopg.connect(url)
        except psycopg.Error as e:
            raise CatalogError("Can't connect to database", cause=e) from e
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - closes connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    # ------------------------------------------------------------------------
    # CatalogSource
    # ------------------------------------------------------------------------

    def fetch_tables(self, catalog: str | None, schema: str) -> list[Mapping[str, Any]]:
        """Get table and view rows in schema.

        OWNER carries the schema name, which qualifies generated DDL.
        """
        query = """
            SELECT
                NULL AS "TABLE_CAT",
                t.table_schema AS "TABLE_SCHEM",
                t.table_name AS "TABLE_NAME",
                CASE WHEN t.table_type = 'VIEW' THEN 'VIEW' ELSE 'TABLE' END AS "TABLE_TYPE",
                obj_description(c.oid, 'pg_class') AS "REMARKS",
                t.table_schema AS "OWNER"
            FROM information_schema.tables t
            JOIN pg_namespace n ON n.nspname = t.table_schema
            JOIN pg_class c ON c.relnamespace = n.oid AND c.relname = t.table_name
            WHERE t.table_schema = %s
              AND t.table_type IN ('BASE TABLE', 'VIEW')
            ORDER BY t.table_name
        """
        rows = self._query(query, (schema,))
        return [row for row in rows if row["TABLE_NAME"] not in self.EXCLUDED_TABLES]

    def fetch_columns(
        self, catalog: str | None, schema: str, table: str
    ) -> list[Mapping[str, Any]]:
        """Get column rows for a table, identity/serial start values included."""
        query = """
            SELECT
                c.table_name AS "TABLE_NAME",
                c.column_name AS "COLUMN_NAME",
                c.data_type AS "TYPE_NAME",
                COALESCE(c.character_maximum_length, c.numeric_precision) AS "COLUMN_SIZE",
                c.numeric_scale AS "DECIMAL_DIGITS",
                CASE WHEN c.is_nullable = 'NO' THEN 0 ELSE 1 END AS "NULLABLE",
                c.is_nullable AS "IS_NULLABLE",
                c.column_default AS "COLUMN_DEF",
                col_description(
                    format('%%I.%%I', c.table_schema, c.table_name)::regclass,
                    c.ordinal_position::int
                ) AS "REMARKS",
                c.ordinal_position AS "ORDINAL_POSITION",
                CASE
                    WHEN c.is_identity = 'YES' OR c.column_default LIKE 'nextval(%%'
                    THEN 'YES' ELSE 'NO'
                END AS "IS_AUTOINCREMENT",
                COALESCE(c.identity_start::bigint, s.start_value) AS "INITIAL_VALUE",
                COALESCE(c.identity_increment::bigint, s.increment_by) AS "INCREMENT_VALUE",
                c.collation_name AS "COLLATION"
            FROM information_schema.columns c
            LEFT JOIN pg_sequences s
                ON format('%%I.%%I', s.schemaname, s.sequencename) = pg_get_serial_sequence(
                    format('%%I.%%I', c.table_schema, c.table_name), c.column_name
                )
            WHERE c.table_schema = %s
              AND c.table_name = %s
            ORDER BY c.ordinal_position
        """
        rows = self._query(query, (schema, table))
        for row in rows:
            row["TYPE_NAME"] = self._normalize_data_type(row["TYPE_NAME"])
        return rows

    def fetch_unique_keys(
        self, catalog: str | None, schema: str, table: str
    ) -> list[Mapping[str, Any]]:
        """Get primary key and unique constraint column rows."""
        query = """
            SELECT
                tc.table_name AS "TABLE_NAME",
                kcu.column_name AS "COLUMN_NAME",
                kcu.ordinal_position AS "KEY_SEQ",
                tc.constraint_name AS "PK_NAME",
                tc.constraint_type AS "CONSTRAINT_TYPE"
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
                ON tc.constraint_name = kcu.constraint_name
                AND tc.table_schema = kcu.table_schema
                AND tc.table_name = kcu.table_name
            WHERE tc.table_schema = %s
              AND tc.table_name = %s
              AND tc.constraint_type IN ('PRIMARY KEY', 'UNIQUE')
            ORDER BY tc.constraint_name, kcu.ordinal_position
        """
        return self._query(query, (schema, table))

    def fetch_foreign_keys(
        self, catalog: str | None, schema: str, table: str
    ) -> list[Mapping[str, Any]]:
        """Get one row per column of each foreign key owned by the table."""
        query = f"""
            SELECT
                pn.nspname AS "PKTABLE_SCHEM",
                pc.relname AS "PKTABLE_NAME",
                pa.attname AS "PKCOLUMN_NAME",
                fn.nspname AS "FKTABLE_SCHEM",
                fc.relname AS "FKTABLE_NAME",
                fa.attname AS "FKCOLUMN_NAME",
                k.seq AS "KEY_SEQ",
                {_RULE_CODE_SQL.format(col="con.confupdtype")} AS "UPDATE_RULE",
                {_RULE_CODE_SQL.format(col="con.confdeltype")} AS "DELETE_RULE",
                con.conname AS "FK_NAME",
                ic.relname AS "PK_NAME",
                CASE
                    WHEN con.condeferrable AND con.condeferred THEN 5
                    WHEN con.condeferrable THEN 6
                    ELSE 7
                END AS "DEFERRABILITY"
            FROM pg_constraint con
            JOIN pg_class fc ON fc.oid = con.conrelid
            JOIN pg_namespace fn ON fn.oid = fc.relnamespace
            JOIN pg_class pc ON pc.oid = con.confrelid
            JOIN pg_namespace pn ON pn.oid = pc.relnamespace
            LEFT JOIN pg_class ic ON ic.oid = con.conindid
            CROSS JOIN LATERAL unnest(con.conkey, con.confkey)
                WITH ORDINALITY AS k(fk_attnum, pk_attnum, seq)
            JOIN pg_attribute fa ON fa.attrelid = con.conrelid AND fa.attnum = k.fk_attnum
            JOIN pg_attribute pa ON pa.attrelid = con.confrelid AND pa.attnum = k.pk_attnum
            WHERE con.contype = 'f'
              AND fn.nspname = %s
              AND fc.relname = %s
            ORDER BY con.conname, k.seq
        """
        return self._query(query, (schema, table))

    def fetch_indexes(
        self, catalog: str | None, schema: str, table: str
    ) -> list[Mapping[str, Any]]:
        """Get one row per index column, primary key index included."""
        query = """
            SELECT
                t.relname AS "TABLE_NAME",
                i.relname AS "INDEX_NAME",
                NOT ix.indisunique AS "NON_UNIQUE",
                upper(am.amname) AS "INDEX_TYPE",
                x.ordinality AS "ORDINAL_POSITION",
                a.attname AS "COLUMN_NAME",
                CASE WHEN (ix.indoption[x.ordinality - 1] & 1) = 1 THEN 'D' ELSE 'A' END
                    AS "ASC_OR_DESC",
                i.reltuples::bigint AS "CARDINALITY"
            FROM pg_index ix
            JOIN pg_class t ON t.oid = ix.indrelid
            JOIN pg_class i ON i.oid = ix.indexrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            JOIN pg_am am ON am.oid = i.relam
            JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS x(attnum, ordinality) ON TRUE
            JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = x.attnum
            WHERE n.nspname = %s
              AND t.relname = %s
            ORDER BY i.relname, x.ordinality
        """
        return self._query(query, (schema, table))

    def fetch_triggers(
        self, catalog: str | None, schema: str, table: str
    ) -> list[Mapping[str, Any]]:
        """Get trigger rows, with event and timing encoded as catalog codes."""
        query = """
            SELECT
                trigger_name AS "NAME",
                trigger_schema AS "TARGET_OWNER_NAME",
                event_object_table AS "TARGET_CLASS_NAME",
                action_order AS "PRIORITY",
                CASE event_manipulation
                    WHEN 'UPDATE' THEN 0
                    WHEN 'DELETE' THEN 2
                    WHEN 'INSERT' THEN 4
                END + CASE WHEN action_orientation = 'STATEMENT' THEN 1 ELSE 0 END
                    AS "EVENT",
                CASE action_timing WHEN 'BEFORE' THEN 1 WHEN 'AFTER' THEN 2 END
                    AS "CONDITION_TIME",
                action_condition AS "CONDITION",
                CASE action_timing WHEN 'BEFORE' THEN 1 WHEN 'AFTER' THEN 2 END
                    AS "ACTION_TIME",
                1 AS "ACTION_TYPE",
                action_statement AS "ACTION_DEFINITION"
            FROM information_schema.triggers
            WHERE event_object_schema = %s
              AND event_object_table = %s
            ORDER BY trigger_name, event_manipulation
        """
        return self._query(query, (schema, table))

    def count_rows(self, table: Table) -> int:
        """Count rows of a table (used as the ``Table.get_row_count`` counter)."""
        query = sql.SQL("SELECT count(*) AS row_count FROM {}.{}").format(
            sql.Identifier(table.container.name), sql.Identifier(table.name)
        )
        rows = self._query(query, ())
        return int(rows[0]["row_count"])

    # ------------------------------------------------------------------------

    def _query(self, query: Any, params: tuple) -> list[dict[str, Any]]:
        """Execute a catalog query and drain it into dict rows."""
        if not self._conn:
            raise RuntimeError("Source not connected. Use with statement.")

        try:
            with self._conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                return cur.fetchall()
        except psycopg.errors.FeatureNotSupported as e:
            # Clear the aborted transaction so later queries can run
            self._conn.rollback()
            raise FeatureNotSupportedError("Catalog query not supported", cause=e) from e
        except psycopg.Error as e:
            self._conn.rollback()
            raise CatalogError("Catalog query failed", cause=e) from e

    def _normalize_data_type(self, data_type: str | None) -> str | None:
        """Normalize PostgreSQL data type names.

        Maps verbose information_schema types to standard names.
        """
        if data_type is None:
            return None
        type_map = {
            "character varying": "VARCHAR",
            "character": "CHAR",
            "timestamp with time zone": "TIMESTAMPTZ",
            "timestamp without time zone": "TIMESTAMP",
            "time without time zone": "TIME",
            "integer": "INTEGER",
            "boolean": "BOOLEAN",
        }
        return type_map.get(data_type.lower(), data_type.upper())
