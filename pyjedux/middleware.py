"""
基於 PyJedux 的中介軟體定義模組。

中介軟體是簽名為 ``(store, action, next)`` 的可呼叫對象，位於 dispatch 與
reducer 之間。它可以不呼叫 next（吞掉 action）、呼叫一次、呼叫多次，
也可以用不同的 action 呼叫 next。在 next 之前的邏輯於「進入」時執行，
之後的邏輯在下游（包括 reducer 與訂閱者通知）全部完成後執行。
"""

import contextlib
import inspect
import logging
import time
from typing import Any, Callable, Dict, Generator, List, Optional, Tuple

from .actions import Action, create_action
from .errors import MiddlewareError
from .immutable_utils import to_dict
from .types import Middleware, NextDispatch, ThunkFunction

logger = logging.getLogger(__name__)

ActionContext = Dict[str, Any]


# ———— Base Middleware ————
class BaseMiddleware:
    """
    基礎中介類，把 ``(store, action, next)`` 協議轉成三個鉤子。

    子類通常只需覆寫 on_next、on_complete、on_error 其中幾個；
    需要完全控制 next 的子類則直接覆寫 __call__。
    """

    def __call__(self, store: Any, action: Any, next: NextDispatch) -> None:
        with self.action_context(action, store.get_state()) as context:
            next(action)
            context['next_state'] = store.get_state()

    def on_next(self, action: Any, prev_state: Any) -> None:
        """
        在 action 往下游傳遞之前調用。

        Args:
            action: 正在 dispatch 的 Action
            prev_state: dispatch 之前的狀態
        """
        pass

    def on_complete(self, next_state: Any, action: Any) -> None:
        """
        在下游（reducer 與訂閱者通知）完成之後調用。

        Args:
            next_state: dispatch 之後的最新狀態
            action: 剛剛 dispatch 的 Action
        """
        pass

    def on_error(self, error: Exception, action: Any) -> None:
        """
        下游拋出異常時調用，異常隨後會被重新拋出。

        Args:
            error: 拋出的異常
            action: 導致異常的 Action
        """
        pass

    @contextlib.contextmanager
    def action_context(self, action: Any, prev_state: Any) -> Generator[ActionContext, None, None]:
        """
        以上下文管理器的形式包裹一次下游執行。

        Args:
            action: 要分發的 Action
            prev_state: 分發前的狀態

        Yields:
            上下文字典，內部可寫入 'next_state' 以觸發 on_complete
        """
        context: ActionContext = {
            'action': action,
            'prev_state': prev_state,
            'next_state': None,
            'error': None,
        }
        self.on_next(action, prev_state)
        try:
            yield context
        except Exception as err:
            context['error'] = err
            self.on_error(err, action)
            raise
        self.on_complete(context['next_state'], action)


def _describe(action: Any) -> str:
    return str(action) if isinstance(action, Action) else repr(action)


# ———— LoggerMiddleware ————
class LoggerMiddleware(BaseMiddleware):
    """
    日誌中介，記錄每個 action 以及前後的狀態。

    使用場景:
    - 偵錯時需要觀察每次 state 的變化。
    - 確認 action 的執行順序。
    """

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.INFO):
        self.logger = logger or logging.getLogger(__name__)
        self.level = level

    def on_next(self, action: Any, prev_state: Any) -> None:
        if not self.logger.isEnabledFor(self.level):
            return
        self.logger.log(self.level, "dispatching %s", _describe(action))
        self.logger.log(self.level, "state before %s: %s", _describe(action), to_dict(prev_state))

    def on_complete(self, next_state: Any, action: Any) -> None:
        if not self.logger.isEnabledFor(self.level):
            return
        self.logger.log(self.level, "state after %s: %s", _describe(action), to_dict(next_state))

    def on_error(self, error: Exception, action: Any) -> None:
        self.logger.error("error in %s: %s", _describe(action), error)


# ———— ThunkMiddleware ————
class ThunkMiddleware(BaseMiddleware):
    """
    支援 dispatch 函數 (thunk)，可以在 thunk 內讀取狀態或多次 dispatch。

    thunk 以 ``thunk(dispatch, get_state)`` 的形式同步執行，本身不會傳到 reducer。

    範例:
        ```python
        def increment_if_odd(dispatch, get_state):
            if get_state()["count"] % 2:
                dispatch(Action(Counter.INCREMENT))

        store.dispatch(increment_if_odd)
        ```
    """

    def __call__(self, store: Any, action: Any, next: NextDispatch) -> None:
        if callable(action) and not isinstance(action, Action):
            thunk: ThunkFunction = action
            thunk(store.dispatch, store.get_state)
            return
        next(action)


# ———— FilterMiddleware ————
class FilterMiddleware(BaseMiddleware):
    """
    只讓 predicate(action) 為真的 action 通過，其餘直接吞掉。

    被吞掉的 action 不會到達 reducer，也不會觸發任何訂閱者。
    """

    def __init__(self, predicate: Callable[[Any], bool]):
        self.predicate = predicate

    def __call__(self, store: Any, action: Any, next: NextDispatch) -> None:
        if self.predicate(action):
            next(action)
        else:
            logger.debug("filtered out %s", _describe(action))


# ———— BatchMiddleware ————
batch_action = create_action("[Batch] BatchAction", lambda items: tuple(items))


class BatchMiddleware(BaseMiddleware):
    """
    把 batch_action([...]) 拆開，對每個子 action 各呼叫一次 next。

    每個子 action 都會獨立經過下游的 reducer 與訂閱者通知。

    範例:
        ```python
        store.dispatch(batch_action([increment(), plus(10)]))
        ```
    """

    def __call__(self, store: Any, action: Any, next: NextDispatch) -> None:
        if not (isinstance(action, Action) and action.type == batch_action.type):
            next(action)
            return
        if not isinstance(action.payload, tuple):
            raise MiddlewareError(
                "batch payload must be a sequence of actions",
                middleware_name=type(self).__name__,
                action_type=action.tag,
                payload=repr(action.payload),
            )
        for item in action.payload:
            next(item)


# ———— ErrorMiddleware ————
global_error = create_action("[Error] GlobalError", lambda info: info)


class ErrorMiddleware(BaseMiddleware):
    """
    捕獲下游的異常，dispatch 一個 global_error Action，再把原異常拋出。

    global_error 本身處理失敗時不會再次上報，避免無限遞迴。

    使用場景:
    - 讓 reducer 可以把錯誤記錄到狀態中，例如顯示錯誤訊息。
    """

    def __call__(self, store: Any, action: Any, next: NextDispatch) -> None:
        try:
            next(action)
        except Exception as err:
            self.on_error(err, action)
            if not (isinstance(action, Action) and action.type == global_error.type):
                self._report(store, err, action)
            raise

    def _report(self, store: Any, error: Exception, action: Any) -> None:
        error_info = {
            "error": str(error),
            "error_type": error.__class__.__name__,
            "action": _describe(action),
            "timestamp": time.time(),
        }
        try:
            store.dispatch(global_error(error_info))
        except Exception:
            logger.exception("failed to dispatch global error for %s", _describe(action))


# ———— PerformanceMonitorMiddleware ————
class PerformanceMonitorMiddleware(BaseMiddleware):
    """
    性能監控中間件，記錄每個 action 下游處理所花的時間。
    """

    def __init__(self, threshold_ms: float = 100, log_all: bool = False):
        """
        Args:
            threshold_ms: 性能警告閾值，單位為毫秒
            log_all: 是否記錄所有 action 的耗時，預設只記錄超過閾值的
        """
        self.threshold_ms = threshold_ms
        self.log_all = log_all
        self.metrics: Dict[str, List[float]] = {}

    def __call__(self, store: Any, action: Any, next: NextDispatch) -> None:
        key = action.tag if isinstance(action, Action) else type(action).__name__
        start_time = time.perf_counter()
        try:
            next(action)
        except Exception as err:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error("action %s failed after %.2fms: %s", key, elapsed_ms, err)
            raise
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        self.metrics.setdefault(key, []).append(elapsed_ms)
        if elapsed_ms > self.threshold_ms:
            logger.warning("action %s exceeded threshold (%sms): %.2fms", key, self.threshold_ms, elapsed_ms)
        elif self.log_all:
            logger.info("action %s took %.2fms", key, elapsed_ms)

    def get_metrics(self) -> Dict[str, Dict[str, float]]:
        """
        獲取性能指標統計信息。

        Returns:
            以 action 類型為鍵，包含 avg、max、min、count 的字典
        """
        result = {}
        for action_type, times in self.metrics.items():
            if not times:
                continue
            result[action_type] = {
                'avg': sum(times) / len(times),
                'max': max(times),
                'min': min(times),
                'count': len(times),
            }
        return result


def apply_middleware(*middlewares: Any) -> Tuple[Middleware, ...]:
    """
    將中介軟體正規化為 Store 可用的元組，類別會被直接實例化。

    Args:
        *middlewares: 中介軟體類別、實例或函數

    Returns:
        依原順序排列的中介軟體元組
    """
    return tuple(m() if inspect.isclass(m) else m for m in middlewares)
