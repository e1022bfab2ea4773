"""
Per-dialect knowledge the mapping core needs: which driver error codes mean
"duplicate key", whether `select ... for update` is understood, and which
StructureManager builds tables.

Dialect names are SQLAlchemy's (`engine.dialect.name`).
"""

from types import ModuleType

from . import mysql, postgresql, sqlite

_DIALECTS: dict[str, ModuleType] = {
    "sqlite": sqlite,
    "mysql": mysql,
    "mariadb": mysql,
    "postgresql": postgresql,
}

# SQLite has no row-level locks and rejects the clause
_ROW_LOCKING = {"mysql", "mariadb", "postgresql"}


def get_dialect(name: str) -> ModuleType | None:
    return _DIALECTS.get(name)


def supports_for_update(name: str) -> bool:
    return name in _ROW_LOCKING


def supports_returning(name: str) -> bool:
    # lastrowid is meaningless on PostgreSQL, ask the INSERT for the key instead
    return name == "postgresql"


__all__ = ["get_dialect", "supports_for_update", "supports_returning"]
