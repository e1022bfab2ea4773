r"""
Single point of access for the mapping base class.

Application code declares its own per-table classes (one module per table is
the usual layout, see `tablemap class:generate`) and imports the base from here:

    from tablemap.models import ModelObject
"""

from .model_object import ModelObject

__all__ = [
    "ModelObject",
]
