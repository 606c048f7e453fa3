"""Input validators for tool arguments and SQL statements."""

import re
from pathlib import Path
from typing import Any, Optional, Tuple

from core.config import QueryConfig


class SQLValidator:
    """SQL statement validator (length limit and read-only mode)."""

    # Statement types allowed in read-only mode
    READ_STATEMENTS = {'SELECT', 'SHOW', 'DESCRIBE', 'DESC', 'EXPLAIN', 'WITH'}

    # Keywords that modify data or schema
    WRITE_KEYWORDS = {
        'INSERT', 'UPDATE', 'DELETE', 'REPLACE', 'DROP', 'ALTER',
        'CREATE', 'TRUNCATE', 'GRANT', 'REVOKE', 'RENAME'
    }

    # Write keywords that are also MySQL string functions, e.g. REPLACE(str, from, to)
    STRING_FUNCTIONS = {'INSERT', 'REPLACE'}

    @classmethod
    def first_keyword(cls, sql: str) -> str:
        match = re.match(r"^[\s(]*(\w+)", sql)
        return match.group(1).upper() if match else ""

    @classmethod
    def validate_statement(cls, sql: str, config: Optional[QueryConfig] = None) -> Tuple[bool, str]:
        """
        Validate that a SQL statement may be executed.

        Args:
            sql: SQL statement to validate
            config: Query configuration (read from the environment if omitted)

        Returns:
            Tuple of (is_valid, error_message)
            - is_valid: True if the statement passes all checks
            - error_message: Empty string if valid, error description if invalid
        """
        if not sql or not sql.strip():
            return False, "Empty SQL statement"

        config = config or QueryConfig.from_env()

        if len(sql) > config.max_query_length:
            return False, f"SQL too long (max {config.max_query_length} characters)"

        if not config.read_only:
            return True, ""

        keyword = cls.first_keyword(sql)
        if keyword not in cls.READ_STATEMENTS:
            allowed = ', '.join(sorted(cls.READ_STATEMENTS))
            return False, f"Read-only mode: only {allowed} statements are allowed"

        sql_upper = sql.upper()
        for write_keyword in cls.WRITE_KEYWORDS:
            if keyword == 'SHOW' and write_keyword == 'CREATE':
                continue
            pattern = rf'\b{write_keyword}\b'
            if write_keyword in cls.STRING_FUNCTIONS:
                pattern += r'(?!\s*\()'
            # Whole words only (avoid false positives like "UPDATED_AT")
            if re.search(pattern, sql_upper):
                return False, f"Read-only mode: keyword '{write_keyword}' not allowed"

        if 'INTO OUTFILE' in sql_upper or 'INTO DUMPFILE' in sql_upper:
            return False, "Read-only mode: file export commands not allowed"

        return True, ""


class InputValidator:
    """General input validation utilities."""

    @staticmethod
    def validate_identifier(name: str, kind: str = "Identifier") -> Tuple[bool, str]:
        """
        Validate a database or table name.

        Args:
            name: Name to validate
            kind: Label used in the error message

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not name:
            return False, f"{kind} cannot be empty"

        if len(name) > 64:
            return False, f"{kind} too long (max 64 characters)"

        if not re.match(r'^[\w$\-]+$', name):
            return False, f"Invalid {kind.lower()} format (only alphanumeric, _, $, - allowed)"

        return True, ""

    @staticmethod
    def validate_port(port: Any) -> Tuple[bool, str]:
        try:
            value = int(port)
        except (TypeError, ValueError):
            return False, f"Invalid port: {port}"

        if isinstance(port, bool) or not 1 <= value <= 65535:
            return False, f"Port out of range (1-65535): {port}"

        return True, ""

    @staticmethod
    def validate_script_path(script_path: str) -> Tuple[bool, str]:
        if not script_path:
            return False, "Script path cannot be empty"

        path = Path(script_path).expanduser()
        if not path.exists():
            return False, f"Script file not found: {script_path}"
        if not path.is_file():
            return False, f"Script path is not a file: {script_path}"

        return True, ""
