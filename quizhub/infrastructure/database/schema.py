"""Loader for the bundled MySQL DDL (``schema.sql``)."""

from functools import lru_cache
from pathlib import Path
from typing import List

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


def split_statements(script: str) -> List[str]:
    """Split a SQL script on ``;``, dropping comment lines and empty statements."""
    lines = [
        line for line in script.splitlines()
        if not line.strip().startswith("--")
    ]
    return [
        statement.strip()
        for statement in "\n".join(lines).split(";")
        if statement.strip()
    ]


@lru_cache()
def load_schema_statements() -> List[str]:
    return split_statements(SCHEMA_PATH.read_text(encoding="utf-8"))
