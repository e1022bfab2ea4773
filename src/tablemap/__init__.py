from .database import Database
from .models import ModelObject
from .structure import StructureManager
from .exceptions import (
    RepositoryError,
    ConfigurationError,
    SQLError,
    DuplicateKeyError,
    ObjectNotFoundError,
    MoreThanOneObjectError,
    UnmappedFieldError,
    IncompleteModelClassError,
)

__all__ = [
    "Database",
    "ModelObject",
    "StructureManager",
    "RepositoryError",
    "ConfigurationError",
    "SQLError",
    "DuplicateKeyError",
    "ObjectNotFoundError",
    "MoreThanOneObjectError",
    "UnmappedFieldError",
    "IncompleteModelClassError",
]
