
# tablemap/
# │
# ├── exceptions/
# │   ├── __init__.py
# │   ├── base.py                    # Library-level errors (e.g. SQLError, DuplicateKeyError)
# │   ├── integrity_classifier.py    # Driver-level / dialect-specific classification
# │   └── mapper.py                  # Map driver errors to library-level errors

from .base import (
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
    "RepositoryError",
    "ConfigurationError",
    "SQLError",
    "DuplicateKeyError",
    "ObjectNotFoundError",
    "MoreThanOneObjectError",
    "UnmappedFieldError",
    "IncompleteModelClassError",
]
