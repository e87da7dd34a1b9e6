"""
PyJedux：同步、單一擁有者的狀態容器。

Store 持有不可變的狀態，透過中介軟體鏈把 Action 交給 reducer，
並在每次狀態替換後通知訂閱者。
"""

from .errors import (
    PyJeduxError, StoreError, ReentrantDispatchError, MiddlewareError,
    ConfigurationError, ErrorHandler, global_error_handler
)
from .actions import Action, create_action
from .config import StoreOptions
from .middleware import (
    BaseMiddleware, LoggerMiddleware, ThunkMiddleware, FilterMiddleware,
    BatchMiddleware, ErrorMiddleware, PerformanceMonitorMiddleware,
    apply_middleware, batch_action, global_error
)
from .reducers import create_reducer, on, combine_reducers
from .store import Store, create_store
from .store_selectors import create_selector
from .immutable_utils import to_immutable, to_dict

__all__ = [
    # Errors
    "PyJeduxError", "StoreError", "ReentrantDispatchError", "MiddlewareError",
    "ConfigurationError", "ErrorHandler", "global_error_handler",

    # Actions
    "Action", "create_action",

    # Config
    "StoreOptions",

    # Middleware
    "BaseMiddleware", "LoggerMiddleware", "ThunkMiddleware", "FilterMiddleware",
    "BatchMiddleware", "ErrorMiddleware", "PerformanceMonitorMiddleware",
    "apply_middleware", "batch_action", "global_error",

    # Reducers
    "create_reducer", "on", "combine_reducers",

    # Store
    "Store", "create_store",

    # Selectors
    "create_selector",

    # Immutable Utils
    "to_immutable", "to_dict",
]
