"""
PyJedux 錯誤處理模組。

定義庫內使用的結構化異常，以及集中式錯誤處理器。
Reducer 與中介軟體拋出的異常不會被包裝，會原樣傳回 dispatch 的呼叫者；
這裡的異常只用於 Store 自身能偵測到的錯誤情況。
"""

import logging
import traceback
import uuid
import weakref
from typing import Any, Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


def _detach_file_handler(file_logger: logging.Logger, handler: logging.Handler) -> None:
    file_logger.removeHandler(handler)
    handler.close()


class PyJeduxError(Exception):
    """所有 PyJedux 異常的基礎類。"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.traceback = "".join(traceback.format_stack()[:-1])

    def to_dict(self) -> Dict[str, Any]:
        """
        將異常轉為字典，便於日誌記錄或上報。

        Returns:
            包含錯誤類型、訊息與細節的字典
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": dict(self.details),
            "traceback": self.traceback,
        }

    def __str__(self) -> str:
        if not self.details:
            return self.message
        details = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
        return f"{self.message} ({details})"


class StoreError(PyJeduxError):
    """與 Store 相關的錯誤。"""

    def __init__(self, message: str, operation: str, **kwargs: Any) -> None:
        super().__init__(message, {"operation": operation, **kwargs})
        self.operation = operation


class ReentrantDispatchError(StoreError):
    """在 reducer 執行期間再次呼叫 dispatch。"""

    def __init__(self, action: Any, **kwargs: Any) -> None:
        super().__init__(
            "dispatch called from inside a reducer",
            operation="dispatch",
            action=str(action),
            **kwargs,
        )


class MiddlewareError(PyJeduxError):
    """與 Middleware 相關的錯誤。"""

    def __init__(self, message: str, middleware_name: str, action_type: Optional[str] = None, **kwargs: Any) -> None:
        details = {"middleware": middleware_name, **kwargs}
        if action_type is not None:
            details["action_type"] = action_type
        super().__init__(message, details)
        self.middleware_name = middleware_name


class ConfigurationError(PyJeduxError):
    """配置相關的錯誤。"""

    def __init__(self, message: str, component: str, config_key: Optional[str] = None, **kwargs: Any) -> None:
        details = {"component": component, **kwargs}
        if config_key is not None:
            details["config_key"] = config_key
        super().__init__(message, details)
        self.component = component


ErrorCallback = Callable[[Exception, Dict[str, Any]], None]


class ErrorHandler:
    """
    集中式錯誤處理器。

    負責記錄錯誤並轉發給已註冊的處理函數。Store 在
    ``subscriber_errors="report"`` 模式下會把訂閱者拋出的異常交給它，
    而不是中斷通知流程。
    """

    def __init__(self, log_to_console: bool = True, log_to_file: bool = False, log_file: Optional[str] = None) -> None:
        """
        Args:
            log_to_console: 是否透過 logging 輸出錯誤
            log_to_file: 是否額外寫入日誌檔
            log_file: 日誌檔路徑，log_to_file 為 True 時必填
        """
        if log_to_file and not log_file:
            raise ConfigurationError(
                "log_file is required when log_to_file is enabled",
                component="ErrorHandler",
                config_key="log_file",
            )
        self.log_to_console = log_to_console
        self.log_to_file = log_to_file
        self.log_file = log_file
        self.handlers: List[ErrorCallback] = []
        self._file_logger: Optional[logging.Logger] = None
        self._file_handler: Optional[logging.FileHandler] = None
        self._finalizer: Optional[weakref.finalize] = None
        if log_to_file:
            self._file_logger = logging.getLogger(f"{__name__}.file.{uuid.uuid4().hex}")
            self._file_logger.propagate = False
            self._file_handler = logging.FileHandler(log_file, encoding="utf-8")
            self._file_logger.addHandler(self._file_handler)
            # 實例被回收時也要關閉檔案
            self._finalizer = weakref.finalize(self, _detach_file_handler, self._file_logger, self._file_handler)

    def close(self) -> None:
        """關閉日誌檔並從 logger 上移除處理器，可重複呼叫。"""
        if self._finalizer is not None:
            self._finalizer()
        self._file_logger = None
        self._file_handler = None

    def register_handler(self, handler: ErrorCallback) -> Callable[[], None]:
        """
        註冊一個錯誤處理函數。

        Args:
            handler: 接收 (error, context) 的函數

        Returns:
            取消註冊用的函數
        """
        self.handlers.append(handler)

        def unregister() -> None:
            if handler in self.handlers:
                self.handlers.remove(handler)

        return unregister

    def handle(self, error: Union[PyJeduxError, Exception], context: Optional[Dict[str, Any]] = None) -> None:
        """
        處理一個錯誤：記錄日誌並依序呼叫已註冊的處理函數。

        Args:
            error: 要處理的異常
            context: 附帶的上下文資訊，例如觸發的 action
        """
        context = context or {}
        if isinstance(error, PyJeduxError):
            payload = error.to_dict()
        else:
            payload = {"error_type": error.__class__.__name__, "message": str(error)}
        payload.update(context)

        if self.log_to_console:
            logger.error("%s: %s %s", payload["error_type"], payload["message"], context, exc_info=error)
        if self._file_logger is not None:
            self._file_logger.error("%s", payload, exc_info=error)

        # 處理函數本身出錯只記錄，不能打斷呼叫者（例如 Store 的通知流程）
        for handler in list(self.handlers):
            try:
                handler(error, context)
            except Exception:
                logger.exception("error handler %r failed", handler)


# 單例錯誤處理器
global_error_handler = ErrorHandler()
