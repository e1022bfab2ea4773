"""
Base class for per-table model objects.

A ModelObject holds one row of one table as a plain dict of column -> value and
tracks which columns were changed since the object was last in sync with the
database. The Database CRUD methods read that state to build their SQL:

    - insert() lists every column,
    - update() sets only the dirty columns,
    - load()/update()/delete() target the row through the primary-key snapshot.

The primary-key snapshot is the value the pk columns had at the last `clean()`.
Changing a pk column with `assign()` therefore does not lose track of the row:
the next update is still issued against the old key, and only after it succeeds
does the snapshot move to the new value.

Subclasses declare the mapping by overriding the hooks below:

    class Product(ModelObject):
        ID = "id"
        NAME = "name"

        @classmethod
        def table_name(cls):
            return "products"

        @classmethod
        def map_fields(cls):
            return {cls.ID: None, cls.NAME: ""}

        def map_pk(self):
            return [self.ID]

        def map_auto_increment(self):
            return self.ID
"""
from __future__ import annotations

import hashlib
import json
import re
from typing import Any, Iterable, Mapping

from ..exceptions.base import IncompleteModelClassError, UnmappedFieldError

_ACCESSOR_PREFIXES = ("get_", "set_")


def _accessor_name(field: str) -> str:
    # 'First Name' -> 'first_name'
    return re.sub(r"\W+", "_", field.strip()).lower()


class ModelObject:
    """
    One table row with dirty tracking and a primary-key snapshot.

    Class attributes subclasses may set:
        accessor_aliases: {accessor name: column}, overrides the default
            get_<column>()/set_<column>() names.
        column_types: {column: "int"}, used by StructureManager.create_table().
    """

    accessor_aliases: dict[str, str] = {}
    column_types: dict[str, str] = {}

    # class -> {accessor name: column}
    _accessors_map: dict[type, dict[str, str]] = {}

    def __init__(self, record: Any = None, prefix: str | None = None,
                 column_translator: Iterable[str] | Mapping[str, str] | None = None):
        # dict keeps the order in which columns became dirty
        self._dirty: dict[str, bool] = {}
        self._columns: dict[str, Any] = dict(self.map_fields())
        self._pk: dict[str, Any] = dict.fromkeys(self.map_pk())

        if record is not None:
            self.wrap(record, prefix, column_translator)

    # =================================================================================================================
    # Mapping hooks
    # =================================================================================================================

    @classmethod
    def map_fields(cls) -> dict[str, Any]:
        """
        Must override. Returns the ordered mapping of column name => default value.
        """
        raise IncompleteModelClassError(cls.__name__)

    @classmethod
    def table_name(cls) -> str:
        """
        Must override. Returns the name of the table.
        """
        raise IncompleteModelClassError(cls.__name__)

    @classmethod
    def table(cls) -> str:
        return cls.table_name()

    def map_pk(self) -> list[str]:
        """
        Should override if the table has a primary key (single- or multiple-column).
        """
        return []

    def map_auto_increment(self) -> str | None:
        """
        Name of the auto-increment column, if any. After a successful insert this
        column receives the newly generated id.
        """
        return None

    # =================================================================================================================
    # Sync state
    # =================================================================================================================

    def get_initial_pk(self) -> dict[str, Any]:
        """
        Returns a copy of the pk columns => their values as of the last clean().
        """
        return dict(self._pk)

    def set_all_dirty(self) -> None:
        self._dirty = dict.fromkeys(self._columns, True)

    def clean(self, insert_id: Any = None) -> "ModelObject":
        """
        Put the object in a saved state: in sync with its database row.

        If `insert_id` is given and the model maps an auto-increment column, the id is
        assigned there first. Then every dirty flag is cleared and the pk snapshot is
        re-taken from the current values, so a following update() targets this row.
        """
        auto_increment = self.map_auto_increment()
        if insert_id is not None and auto_increment is not None:
            self.assign(auto_increment, insert_id)

        self._dirty = {}
        self._pk = {key: self.column(key) for key in self.map_pk()}
        return self

    def clean_field(self, field: str) -> None:
        """
        Consider one column synchronized with the database. If it is part of the
        pk, the snapshot for that column moves to its current value.
        """
        self._dirty.pop(field, None)
        if field in self.map_pk():
            self._pk[field] = self._columns[field]

    def get_dirty_fields(self) -> list[str]:
        return list(self._dirty)

    def _mark_dirty(self, field: str) -> None:
        self._dirty[field] = True

    def _clear(self, field: str) -> None:
        self._dirty.pop(field, None)

    # =================================================================================================================
    # Values
    # =================================================================================================================

    def assign(self, field: str, value: Any) -> "ModelObject":
        self._columns[field] = value
        self._mark_dirty(field)
        return self

    def column(self, name: str) -> Any:
        """
        Returns the value of the specified column.

        Raises:
            UnmappedFieldError: if the model does not map `name`.
        """
        if name not in self._columns:
            raise UnmappedFieldError(name, self.table(), type(self).__name__)
        return self._columns[name]

    def get_select_clause(self) -> dict[str, Any]:
        """
        Returns the columns, back-quoted, with their values.
        """
        return {f"`{column}`": value for column, value in self._columns.items()}

    def record(self, fields_map: Mapping[str, str] | None = None) -> dict[str, Any]:
        """
        Returns the current column values. With `fields_map` ({column: key}), the
        columns it names are renamed in the result.
        """
        if not fields_map:
            return dict(self._columns)
        return {fields_map.get(key, key): value for key, value in self._columns.items()}

    def shadow(self) -> str:
        """
        Hash of the current record() values. Compare the shadow taken when a row was
        shown for editing with the shadow of a fresh load before writing it back.
        """
        payload = json.dumps(self.record(), sort_keys=True, default=str)
        return hashlib.md5(payload.encode("utf-8")).hexdigest()

    def change_set(self, source: "ModelObject") -> dict[str, tuple[Any, Any]] | None:
        """
        Returns {field: (old value, new value)} for every field of this object that
        differs from `source`, or None when nothing changed.
        """
        source_values = source.get_select_clause()
        changes: dict[str, tuple[Any, Any]] = {}
        for field, value in self.get_select_clause().items():
            if field not in source_values:
                changes[field] = (None, value)
            elif value != source_values[field]:
                changes[field] = (source_values[field], value)

        return changes or None

    # =================================================================================================================
    # Binding result rows
    # =================================================================================================================

    def wrap(self, row: Any, prefix: str | None = "",
             column_translator: Iterable[str] | Mapping[str, str] | None = None) -> "ModelObject":
        """
        Bind a result row to the object. The wrapped columns reflect the database,
        so they are clean, and the whole object is clean() once the row is applied.

        Args:
            row: a mapping (dict, RowMapping), a SQLAlchemy Row or any object with attributes.
            prefix: stripped from the start of every row key (e.g. a select alias prefix).
            column_translator:
                - None: every row key naming a mapped column is copied;
                - a sequence: only the row keys it lists are copied;
                - a mapping {row key: column}: explicit translation, prefix not stripped.
        """
        prefix = (prefix or "").lower()
        values = {str(key).lower(): value for key, value in _row_items(row)}
        # row keys are compared lower-cased; mapped names keep their case
        columns_by_lower_name = {column.lower(): column for column in self._columns}

        translator_is_mapping = isinstance(column_translator, Mapping)
        if translator_is_mapping:
            column_translator = {str(key).lower(): column for key, column in column_translator.items()}
        elif column_translator is not None:
            column_translator = [str(name).lower() for name in column_translator]

        for key, value in values.items():
            model_column = key[len(prefix):] if prefix and key.startswith(prefix) else key

            if column_translator is None:
                target = model_column
            elif not translator_is_mapping:
                target = model_column if key in column_translator else None
            else:
                target = column_translator.get(key)

            target = columns_by_lower_name.get(str(target).lower()) if target is not None else None
            if target is not None:
                self._columns[target] = value
                self._clear(target)

        self.clean()
        return self

    # =================================================================================================================
    # get_<field>() / set_<field>() accessors
    # =================================================================================================================

    @classmethod
    def accessors(cls) -> dict[str, str]:
        """
        Accessor name => column, cached per class. Defaults to the column names,
        overridden by `accessor_aliases`.
        """
        accessors = ModelObject._accessors_map.get(cls)
        if accessors is None:
            accessors = {_accessor_name(field): field for field in cls.map_fields()}
            accessors.update(cls.accessor_aliases)
            ModelObject._accessors_map[cls] = accessors
        return accessors

    def __getattr__(self, name: str):
        # only reached for attributes not found the normal way
        if name.startswith("_") or not name.startswith(_ACCESSOR_PREFIXES):
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

        mode, principal = name[:3], name[4:]
        target = type(self).accessors().get(principal)
        if target is None:
            raise AttributeError(f"Method not found: {type(self).__name__}.{name}")

        if mode == "get":
            return lambda: self.column(target)
        return lambda value: self.assign(target, value)

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(pk={self._pk!r}, dirty={self.get_dirty_fields()!r})>"


def _row_items(row: Any) -> Iterable[tuple[Any, Any]]:
    if isinstance(row, Mapping):
        return row.items()
    mapping = getattr(row, "_mapping", None)
    if mapping is not None:
        return mapping.items()
    return vars(row).items()
