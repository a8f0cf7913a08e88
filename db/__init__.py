from .engine import Base  # noqa: F401
from .repository import (  # noqa: F401
    add_period,
    delete_period,
    get_period,
    list_periods,
    session_scope,
    update_period,
)

__all__ = [
    "Base",
    "add_period",
    "delete_period",
    "get_period",
    "list_periods",
    "session_scope",
    "update_period",
]
