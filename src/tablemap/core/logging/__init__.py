# tablemap/core/logging/
# ├─ __init__.py            # public API: setup_logging, make_dict_config, connection-name helpers
# ├─ builder.py             # make_dict_config(settings) + setup_logging(settings)
# ├─ formatters.py          # JsonFormatter, ColorFormatter
# ├─ filters.py             # ConnectionNameFilter (+ contextvar helpers), RedactFilter
# └─ handlers.py            # console / rotating file handler factories


from .builder import setup_logging, make_dict_config
from .filters import set_connection_name, get_connection_name, reset_connection_name, ConnectionNameFilter

__all__ = [
    "setup_logging",
    "make_dict_config",
    "set_connection_name",
    "get_connection_name",
    "reset_connection_name",
    "ConnectionNameFilter",
]
