from .manager import StructureManager

__all__ = ["StructureManager"]
