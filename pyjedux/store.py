import logging
import threading
from typing import Any, Callable, Generic, List, Mapping, Optional, Tuple, Union

import reactivex
from reactivex import Observable, operators as ops
from reactivex.disposable import Disposable

from .config import StoreOptions, resolve_options
from .errors import ErrorHandler, ReentrantDispatchError, global_error_handler
from .types import Middleware, NextDispatch, Reducer, S, StateSelector, Subscriber, Unsubscribe

logger = logging.getLogger(__name__)


class _Subscription:
    """訂閱登記項。同一個回調訂閱兩次會得到兩個獨立的登記項。"""

    __slots__ = ("callback", "active")

    def __init__(self, callback: Subscriber):
        self.callback = callback
        self.active = True


class Store(Generic[S]):
    """
    狀態容器，持有不可變的應用狀態，透過 reducer 計算新狀態並通知訂閱者。

    中介軟體鏈在建構時組裝完成，之後不再改變。第一個傳入的中介軟體
    最先執行，reducer 與訂閱者通知位於鏈的最內層。

    Store 可被多個執行緒同時呼叫。唯一的互斥區是 reducer 計算與狀態
    替換這一步，中介軟體邏輯與訂閱者通知都在鎖外於呼叫者執行緒上執行。
    """

    def __init__(
        self,
        reducer: Reducer[S],
        initial_state: S,
        *middlewares: Middleware,
        options: Optional[Union[StoreOptions, Mapping[str, Any]]] = None,
        error_handler: Optional[ErrorHandler] = None,
    ):
        """
        建立 Store 並組裝中介軟體鏈。

        Args:
            reducer: 純函數 (action, state) -> new_state
            initial_state: 初始狀態
            *middlewares: 依執行順序排列的中介軟體
            options: StoreOptions 或等價的字典
            error_handler: subscriber_errors="report" 時使用的錯誤處理器，
                預設為 global_error_handler

        Raises:
            ConfigurationError: options 不合法時
        """
        self._options = resolve_options(options)
        self._reducer = reducer
        self._state = initial_state
        # 只保護狀態的讀取-計算-寫入
        self._state_lock = threading.Lock()
        # 只保護訂閱列表本身的增刪
        self._registry_lock = threading.Lock()
        self._subscribers: List[_Subscription] = []
        self._reducing = threading.local()
        self._error_handler = error_handler or global_error_handler
        self._middlewares: Tuple[Middleware, ...] = tuple(middlewares)
        self._dispatch_chain = self._apply_middleware_chain()
        logger.debug(
            "store %r created with %d middleware(s)", self._options.name, len(self._middlewares)
        )

    @property
    def options(self) -> StoreOptions:
        return self._options

    @property
    def middlewares(self) -> Tuple[Middleware, ...]:
        """建構時固定的中介軟體順序。"""
        return self._middlewares

    def _apply_middleware_chain(self) -> NextDispatch:
        """
        構建中介軟體鏈，將中介軟體按相反順序包裹在核心 dispatch 外層。

        Returns:
            鏈的頭部續延
        """
        dispatch: NextDispatch = self._dispatch_core
        for mw in reversed(self._middlewares):
            dispatch = self._wrap_middleware(mw, dispatch)
        return dispatch

    def _wrap_middleware(self, mw: Middleware, next_dispatch: NextDispatch) -> NextDispatch:
        def dispatch(action: Any) -> None:
            mw(self, action, next_dispatch)

        return dispatch

    def _ensure_not_reducing(self, action: Any) -> None:
        if getattr(self._reducing, "active", False):
            raise ReentrantDispatchError(action, store=self._options.name)

    def _dispatch_core(self, action: Any) -> None:
        """
        鏈的最內層：在鎖內計算並替換狀態，釋放鎖後通知訂閱者。

        reducer 拋出異常時狀態保持不變，也不會通知任何訂閱者。
        """
        self._ensure_not_reducing(action)
        with self._state_lock:
            prev_state = self._state
            self._reducing.active = True
            try:
                next_state = self._reducer(action, prev_state)
            finally:
                self._reducing.active = False
            self._state = next_state

        if self._options.skip_unchanged and next_state is prev_state:
            return
        self._notify()

    def _notify(self) -> None:
        with self._registry_lock:
            snapshot = tuple(self._subscribers)

        report = self._options.subscriber_errors == "report"
        for subscription in snapshot:
            # 在本輪通知中途取消訂閱的回調不再被呼叫
            if not subscription.active:
                continue
            if not report:
                subscription.callback()
                continue
            try:
                subscription.callback()
            except Exception as err:
                logger.debug("subscriber %r failed in store %r", subscription.callback, self._options.name)
                self._error_handler.handle(
                    err,
                    {"store": self._options.name, "subscriber": repr(subscription.callback)},
                )

    def dispatch(self, action: Any) -> S:
        """
        分發一個動作，同步執行整條中介軟體鏈。

        Args:
            action: 要分發的 Action

        Returns:
            鏈完全返回後的當前狀態。中介軟體可能讓 reducer 執行零次或多次，
            返回值並不區分「沒有變化」與「狀態已更新」。

        Raises:
            ReentrantDispatchError: 在 reducer 內部呼叫 dispatch 時
        """
        self._ensure_not_reducing(action)
        self._dispatch_chain(action)
        return self._state

    def get_state(self) -> S:
        """返回當前狀態引用，沒有任何副作用。"""
        return self._state

    @property
    def state(self) -> S:
        return self._state

    def subscribe(self, callback: Subscriber) -> Unsubscribe:
        """
        註冊一個無參數回調，每次狀態替換後被呼叫。

        Args:
            callback: 訂閱者回調

        Returns:
            取消訂閱函數，重複呼叫不會有任何效果
        """
        subscription = _Subscription(callback)
        with self._registry_lock:
            self._subscribers.append(subscription)

        def unsubscribe() -> None:
            with self._registry_lock:
                if not subscription.active:
                    return
                subscription.active = False
                self._subscribers.remove(subscription)

        return unsubscribe

    def select(self, selector: Optional[StateSelector] = None) -> Observable:
        """
        以 Observable 形式觀察狀態的一部分。

        每個觀察者訂閱時會先收到當前值，之後每次通知時收到
        selector(state)，連續相等的值只發送一次。處置訂閱即取消對 Store 的訂閱。

        Args:
            selector: 從整個狀態中提取值的函數，省略時發送整個狀態

        Returns:
            一個冷的 Observable
        """
        select: Callable[[Any], Any] = selector or (lambda state: state)

        def on_subscribe(observer, scheduler=None):
            def emit() -> None:
                try:
                    value = select(self._state)
                except Exception as err:
                    observer.on_error(err)
                    return
                observer.on_next(value)

            unsubscribe = self.subscribe(emit)
            emit()
            return Disposable(unsubscribe)

        return reactivex.create(on_subscribe).pipe(ops.distinct_until_changed())

    def __repr__(self) -> str:
        return f"Store(name={self._options.name!r}, state={self._state!r})"


def create_store(
    reducer: Reducer[S],
    initial_state: S,
    *middlewares: Middleware,
    options: Optional[Union[StoreOptions, Mapping[str, Any]]] = None,
    error_handler: Optional[ErrorHandler] = None,
) -> Store[S]:
    """
    創建一個新的 Store 實例。

    Args:
        reducer: 純函數 (action, state) -> new_state
        initial_state: 初始狀態
        *middlewares: 依執行順序排列的中介軟體
        options: StoreOptions 或等價的字典
        error_handler: 報告訂閱者錯誤用的處理器

    Returns:
        Store: 新創建的 Store 實例。
    """
    return Store(reducer, initial_state, *middlewares, options=options, error_handler=error_handler)
