"""
MySQL database adapter for schema scanning and query execution.
"""
import logging
import threading
from typing import Any, Dict, List, Optional, Sequence

import pymysql
from pymysql.converters import escape_string

from config.settings import DatabaseConfig
from storage.base import SchemaStore
from utils.errors import SchemaStoreError

logger = logging.getLogger(__name__)

# Client-side error codes (CR_*) are raised when the server cannot be reached
# or the connection dropped; server error codes are below 2000.
CLIENT_ERROR_CODES = range(2000, 3000)


def is_connection_error(error: BaseException) -> bool:
    """Whether a driver error means the database was unreachable."""
    if isinstance(error, pymysql.err.InterfaceError):
        return True
    if isinstance(error, pymysql.err.OperationalError) and error.args:
        code = error.args[0]
        return isinstance(code, int) and code in CLIENT_ERROR_CODES
    return isinstance(error, (ConnectionError, TimeoutError))


NUMERIC_DATA_TYPES = {
    "tinyint", "smallint", "mediumint", "int", "bigint",
    "decimal", "float", "double", "bit", "year"
}


def render_column_default(col_info: Dict[str, Any]) -> str:
    """DEFAULT clause value for an INFORMATION_SCHEMA.COLUMNS row.

    MySQL reports string literals unquoted; numbers and expression defaults
    (CURRENT_TIMESTAMP, DEFAULT_GENERATED) are rendered as given.
    """
    default = str(col_info['COLUMN_DEFAULT'])
    extra = (col_info.get('EXTRA') or "").upper()
    data_type = (col_info.get('DATA_TYPE') or "").lower()

    if "DEFAULT_GENERATED" in extra or default.upper().startswith("CURRENT_TIMESTAMP"):
        return default
    if data_type in NUMERIC_DATA_TYPES:
        return default
    if default.startswith("'") and default.endswith("'") and len(default) >= 2:
        return default
    return f"'{escape_string(default)}'"


class MySQLSchemaStore(SchemaStore):
    """MySQL schema store backed by a single pymysql connection."""

    def __init__(self, db_config: DatabaseConfig):
        """Initialize MySQL schema store.

        Args:
            db_config: Database connection parameters
        """
        self.db_config = db_config
        self._connection = None
        self._lock = threading.Lock()

    def get_connection(self):
        """Get or create database connection."""
        if self._connection is None or not self._connection.open:
            connect_kwargs = dict(
                host=self.db_config.host,
                port=self.db_config.port,
                user=self.db_config.user,
                password=self.db_config.password,
                database=self.db_config.database,
                charset='utf8mb4',
                cursorclass=pymysql.cursors.DictCursor,
                autocommit=True
            )
            if self.db_config.ssl:
                connect_kwargs["ssl"] = {"check_hostname": False}
            self._connection = pymysql.connect(**connect_kwargs)
            logger.info(f"Connected to MySQL at {self.db_config.host}:{self.db_config.port}/{self.db_config.database}")
        return self._connection

    def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Execute a SQL statement and return result rows.

        Args:
            sql: SQL statement, ``%s`` placeholders for parameters
            params: Optional statement parameters

        Returns:
            List of result dictionaries

        Raises:
            SchemaStoreError: if the statement fails or the database is unreachable
        """
        with self._lock:
            # Any failure to connect, including server-side refusals such as
            # access denied or unknown database, means the database is unavailable
            try:
                conn = self.get_connection()
            except (pymysql.err.Error, ConnectionError, TimeoutError) as e:
                logger.error(f"MySQL unavailable: {e}")
                raise SchemaStoreError(f"Connection failed: {e}", e, unavailable=True) from e

            try:
                with conn.cursor() as cursor:
                    cursor.execute(sql, params)
                    rows = cursor.fetchall()
            except pymysql.err.Error as e:
                unavailable = is_connection_error(e)
                if unavailable:
                    logger.error(f"MySQL unavailable: {e}")
                raise SchemaStoreError(f"Query failed: {e}", e, unavailable=unavailable) from e
            except (ConnectionError, TimeoutError) as e:
                logger.error(f"MySQL unavailable: {e}")
                raise SchemaStoreError(f"Query failed: {e}", e, unavailable=True) from e

        logger.debug(f"Query returned {len(rows)} rows")
        return list(rows)

    def list_tables(self) -> List[str]:
        """Get the base tables of the configured database."""
        rows = self.query("""
            SELECT TABLE_NAME
            FROM INFORMATION_SCHEMA.TABLES
            WHERE TABLE_SCHEMA = %s AND TABLE_TYPE = 'BASE TABLE'
            ORDER BY TABLE_NAME
        """, (self.db_config.database,))

        return [row['TABLE_NAME'] for row in rows]

    def render_table_ddl(self, table_name: str) -> str:
        """Render a CREATE TABLE statement from INFORMATION_SCHEMA.

        Args:
            table_name: Name of table

        Returns:
            DDL text with columns, primary key and foreign keys
        """
        columns_info = self.query("""
            SELECT
                COLUMN_NAME,
                COLUMN_TYPE,
                IS_NULLABLE,
                COLUMN_DEFAULT,
                COLUMN_KEY,
                DATA_TYPE,
                EXTRA
            FROM INFORMATION_SCHEMA.COLUMNS
            WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s
            ORDER BY ORDINAL_POSITION
        """, (self.db_config.database, table_name))

        fk_info = self.query("""
            SELECT
                COLUMN_NAME,
                REFERENCED_TABLE_NAME,
                REFERENCED_COLUMN_NAME
            FROM INFORMATION_SCHEMA.KEY_COLUMN_USAGE
            WHERE TABLE_SCHEMA = %s
                AND TABLE_NAME = %s
                AND REFERENCED_TABLE_NAME IS NOT NULL
        """, (self.db_config.database, table_name))

        definitions = []
        primary_keys = []

        for col_info in columns_info:
            definition = f"{col_info['COLUMN_NAME']} {col_info['COLUMN_TYPE']}"
            if col_info['IS_NULLABLE'] == 'NO':
                definition += " NOT NULL"
            if col_info['COLUMN_DEFAULT'] is not None:
                definition += f" DEFAULT {render_column_default(col_info)}"
            definitions.append(definition)

            if col_info['COLUMN_KEY'] == 'PRI':
                primary_keys.append(col_info['COLUMN_NAME'])

        if primary_keys:
            definitions.append(f"PRIMARY KEY ({', '.join(primary_keys)})")

        for fk in fk_info:
            definitions.append(
                f"FOREIGN KEY ({fk['COLUMN_NAME']}) "
                f"REFERENCES {fk['REFERENCED_TABLE_NAME']}({fk['REFERENCED_COLUMN_NAME']})"
            )

        return f"CREATE TABLE {table_name} ({', '.join(definitions)})"

    def close(self):
        """Close database connection."""
        with self._lock:
            if self._connection and self._connection.open:
                self._connection.close()
                logger.info("Closed MySQL connection")
            self._connection = None
