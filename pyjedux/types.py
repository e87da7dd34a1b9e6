"""
PyJedux 共用型別定義。
"""

from typing import TYPE_CHECKING, Any, Callable, TypeVar

from typing_extensions import Protocol

if TYPE_CHECKING:
    from .actions import Action
    from .store import Store

S = TypeVar("S")  # 狀態類型
A = TypeVar("A")  # Action 類型
P = TypeVar("P")  # 負載類型
R = TypeVar("R")  # 選擇器結果類型

# (action, state) -> new_state，必須是純函數
Reducer = Callable[[Any, S], S]

# 中介鏈中「剩餘部分」的續延
NextDispatch = Callable[[Any], None]

# 無參數回調，每次 dispatch 完成狀態替換後被呼叫
Subscriber = Callable[[], None]

# subscribe 返回的取消訂閱函數，可重複呼叫
Unsubscribe = Callable[[], None]

GetState = Callable[[], Any]
DispatchFunction = Callable[[Any], Any]

# thunk(dispatch, get_state)
ThunkFunction = Callable[[DispatchFunction, GetState], Any]

StateSelector = Callable[[Any], Any]


class Middleware(Protocol):
    """中介軟體：可決定是否、何時以及用哪個 action 呼叫 next。"""

    def __call__(self, store: "Store[Any]", action: Any, next: NextDispatch) -> None:
        ...


class ActionCreator(Protocol):
    type: Any

    def __call__(self, *args: Any, **kwargs: Any) -> "Action[Any]":
        ...
