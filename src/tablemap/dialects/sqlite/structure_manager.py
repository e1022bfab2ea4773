from __future__ import annotations

import logging

from ...models.model_object import ModelObject
from ...structure.manager import StructureManager

logger = logging.getLogger(__name__)


class SqliteStructureManager(StructureManager):
    """
    Columns are `text` unless they are the auto-increment column or declared
    `"int"` in the model's `column_types`, which become `integer`. A single
    integer primary key is SQLite's rowid alias, so auto-increment just works.
    """

    async def create_table(self, model_cls: type[ModelObject]) -> None:
        self._ensure_model_class(model_cls)

        model = model_cls()
        auto_increment = model.map_auto_increment()
        type_hints = model_cls.column_types
        quote = self.database.quote_identifier

        fields_spec = []
        for field in model_cls.map_fields():
            if field == auto_increment or type_hints.get(field) == "int":
                fields_spec.append(f"{quote(field)} integer")
            else:
                fields_spec.append(f"{quote(field)} text")

        pk = model.map_pk()
        if pk:
            fields_spec.append(f"primary key ({', '.join(quote(key) for key in pk)})")

        query = f"create table {quote(model_cls.table())} ({', '.join(fields_spec)})"
        await self.database.execute(query, model_name=model_cls.__name__)
        logger.info("structure.create_table", extra={"table": model_cls.table(), "columns": len(fields_spec)})

    async def drop_table(self, model_cls: type[ModelObject]) -> None:
        self._ensure_model_class(model_cls)

        query = f"drop table {self.database.quote_identifier(model_cls.table())}"
        await self.database.execute(query, model_name=model_cls.__name__)
        logger.info("structure.drop_table", extra={"table": model_cls.table()})
