from . import error_codes
from .structure_manager import SqliteStructureManager

STRUCTURE_MANAGER = SqliteStructureManager

__all__ = ["error_codes", "SqliteStructureManager", "STRUCTURE_MANAGER"]
