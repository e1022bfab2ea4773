"""
Generate the source of a ModelObject subclass from a table definition.

The definition is a list of MySQL `DESCRIBE`-shaped rows
({"Field", "Type", "Null", "Key", "Default", "Extra"}), obtained either

  - from a live database: `describe_table(database, table)` (MySQL/MariaDB
    `describe`, SQLite `pragma table_info` translated to the same shape),
  - or from the text output of `mysql -e "describe <table>"`:
    `parse_describe_output(lines)`.

`build_model_info()` then derives the constants, primary key and
auto-increment column, and `render_model_module()` prints the module.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from ..database import Database
from ..exceptions.base import SQLError
from ..models.model_object import ModelObject

logger = logging.getLogger(__name__)

# get_/set_ methods of the base class itself, e.g. get_initial_pk
_BASE_ATTRIBUTES = frozenset(dir(ModelObject))

# MySQL type prefix -> (python annotation, import line or None, column_types value or None)
_TYPE_HINTS: list[tuple[str, str, str | None, str | None]] = [
    ("bigint", "int", None, "int"),
    ("mediumint", "int", None, "int"),
    ("smallint", "int", None, "int"),
    ("tinyint", "int", None, "int"),
    ("integer", "int", None, "int"),
    ("int", "int", None, "int"),
    ("decimal", "Decimal", "from decimal import Decimal", None),
    ("numeric", "Decimal", "from decimal import Decimal", None),
    ("double", "float", None, None),
    ("float", "float", None, None),
    ("real", "float", None, None),
    ("datetime", "datetime", "from datetime import datetime", None),
    ("timestamp", "datetime", "from datetime import datetime", None),
    ("date", "date", "from datetime import date", None),
    ("blob", "bytes", None, None),
    ("binary", "bytes", None, None),
    ("varbinary", "bytes", None, None),
]


@dataclass
class ColumnInfo:
    field: str
    const: str
    accessor: str
    annotation: str = "str"
    column_type: str | None = None


@dataclass
class ModelInfo:
    columns: list[ColumnInfo] = field(default_factory=list)
    pk: list[str] = field(default_factory=list)
    auto: str | None = None
    imports: list[str] = field(default_factory=list)


# =================================================================================================================
# Table definition sources
# =================================================================================================================

def parse_describe_output(lines: Iterable[str]) -> list[dict[str, str]]:
    """
    Parse the text table printed by `mysql -e "describe <table>"`.

    The first line holds the column titles; the offset at which each title starts
    is where that property's value starts on the following lines. Separator lines
    (starting with "-") and blank lines are skipped.
    """
    fields_pos: list[tuple[str, int]] | None = None
    table_def: list[dict[str, str]] = []

    for raw_line in lines:
        line = raw_line.strip()
        if not line:
            continue

        if fields_pos is None:
            fields_pos = [(m.group(0), m.start()) for m in re.finditer(r"\S+", line)]
            continue

        if line.startswith("-"):
            continue

        values = {}
        for title, start in fields_pos:
            # value runs until the first blank
            values[title] = re.split(r"\s", line[start:], maxsplit=1)[0]
        table_def.append(values)

    return table_def


def _from_sqlite_pragma(rows: list[Mapping]) -> list[dict[str, str]]:
    pk_columns = [row for row in rows if row["pk"]]
    table_def = []
    for row in rows:
        # a lone "integer primary key" is the rowid alias
        is_rowid = row["pk"] and len(pk_columns) == 1 and str(row["type"]).upper() == "INTEGER"
        table_def.append({
            "Field": row["name"],
            "Type": str(row["type"]).lower(),
            "Null": "NO" if row["notnull"] else "YES",
            "Key": "PRI" if row["pk"] else "",
            "Default": row["dflt_value"],
            "Extra": "auto_increment" if is_rowid else "",
        })
    return table_def


async def describe_table(database: Database, table: str) -> list[dict[str, str]]:
    """
    Read the definition of `table` from a live database.

    Raises:
        SQLError: the table does not exist, or the dialect cannot be described.
    """
    driver = database.get_driver_name()
    quoted = database.quote_identifier(table)

    if driver in ("mysql", "mariadb"):
        rows = await database.fetch_all(f"describe {quoted}")
        table_def = [dict(row) for row in rows]
    elif driver == "sqlite":
        query = f"pragma table_info({quoted})"
        rows = await database.fetch_all(query)
        if not rows:
            raise SQLError(query, f"No such table: {table}")
        table_def = _from_sqlite_pragma(rows)
    else:
        raise SQLError("", f"Cannot describe tables on dialect '{driver}'.")

    logger.debug("class_generator.described", extra={"table": table, "columns": len(table_def)})
    return table_def


# =================================================================================================================
# Model info
# =================================================================================================================

def const_name(field_name: str) -> str:
    """
    'first name' -> 'FIRST_NAME', '2fa' -> '_2FA'
    """
    const = re.sub(r"\W", "_", field_name.strip().replace(" ", "_")).upper()
    if re.match(r"[0-9]", const):
        const = "_" + const
    return const


def accessor_name(const: str) -> str:
    """
    'FIRST_NAME' -> 'first_name'; a name whose get_/set_ method already exists on
    ModelObject gets a '_column' suffix ('INITIAL_PK' -> 'initial_pk_column').
    """
    accessor = const.lstrip("_").lower()
    while f"get_{accessor}" in _BASE_ATTRIBUTES or f"set_{accessor}" in _BASE_ATTRIBUTES:
        accessor += "_column"
    return accessor


def _type_hint(sql_type: str | None) -> tuple[str, str | None, str | None]:
    normalized = (sql_type or "").lower()
    for prefix, annotation, import_line, column_type in _TYPE_HINTS:
        if normalized.startswith(prefix):
            return annotation, import_line, column_type
    return "str", None, None


def build_model_info(table_def: Iterable[Mapping[str, str]]) -> ModelInfo:
    info = ModelInfo()

    for column in table_def:
        field_name = column["Field"]
        const = const_name(field_name)
        annotation, import_line, column_type = _type_hint(column.get("Type"))

        info.columns.append(ColumnInfo(
            field=field_name,
            const=const,
            accessor=accessor_name(const),
            annotation=annotation,
            column_type=column_type,
        ))
        if import_line and import_line not in info.imports:
            info.imports.append(import_line)

        # several PRI columns make a composite key
        if column.get("Key") == "PRI":
            info.pk.append(const)

        if column.get("Extra") == "auto_increment":
            info.auto = const

    return info


# =================================================================================================================
# Rendering
# =================================================================================================================

def render_model_module(info: ModelInfo, table: str, class_name: str, module_doc: str | None = None) -> str:
    lines: list[str] = []

    if module_doc:
        lines += ['"""', module_doc, '"""', ""]
    if info.imports:
        lines += sorted(info.imports) + [""]
    lines += ["from tablemap import ModelObject", "", ""]
    lines.append(f"class {class_name}(ModelObject):")

    for column in info.columns:
        lines.append(f"    {column.const} = {column.field!r}")
    lines.append("")

    typed = [column for column in info.columns if column.column_type]
    if typed:
        entries = ", ".join(f"{column.const}: {column.column_type!r}" for column in typed)
        lines += [f"    column_types = {{{entries}}}", ""]

    lines += [
        "    @classmethod",
        "    def table_name(cls):",
        f"        return {table!r}",
        "",
        "    @classmethod",
        "    def map_fields(cls):",
        "        return {",
    ]
    for column in info.columns:
        lines.append(f"            cls.{column.const}: None,")
    lines += ["        }", ""]

    if info.pk:
        pks = ", ".join(f"self.{const}" for const in info.pk)
        lines += ["    def map_pk(self):", f"        return [{pks}]", ""]

    if info.auto:
        lines += ["    def map_auto_increment(self):", f"        return self.{info.auto}", ""]

    for column in info.columns:
        hint = f"{column.annotation} | None"
        lines += [
            f"    def get_{column.accessor}(self) -> {hint}:",
            f"        return self.column(self.{column.const})",
            "",
            f"    def set_{column.accessor}(self, value: {hint}) -> \"{class_name}\":",
            f"        return self.assign(self.{column.const}, value)",
            "",
        ]

    return "\n".join(lines).rstrip() + "\n"
