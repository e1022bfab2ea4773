"""
Trivial DDL helpers: create or drop the table a ModelObject class maps.

Each dialect provides its own subclass (see tablemap.dialects); obtain the right
one with `Database.get_structure_manager()`.
"""
from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from ..models.model_object import ModelObject

if TYPE_CHECKING:
    from ..database.database import Database


class StructureManager(abc.ABC):

    def __init__(self, database: "Database"):
        self.database = database

    @abc.abstractmethod
    async def create_table(self, model_cls: type[ModelObject]) -> None:
        ...

    @abc.abstractmethod
    async def drop_table(self, model_cls: type[ModelObject]) -> None:
        ...

    @staticmethod
    def _ensure_model_class(model_cls) -> None:
        if not (isinstance(model_cls, type) and issubclass(model_cls, ModelObject)):
            raise TypeError("Invalid call: must pass a ModelObject subclass.")
