from . import error_codes

__all__ = ["error_codes"]
