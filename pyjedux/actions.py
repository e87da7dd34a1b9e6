"""
基於 PyJedux 的 Action 定義模組。

此模組提供 Action 類別以及創建 Action 的功能。
Actions 是描述「發生了什麼」的不可變對象，由呼叫者創建並交給
Store.dispatch，Store 本身不會保留它們。
"""
from enum import Enum
from typing import Any, Callable, Dict, Generic, Optional, Union

from .immutable_utils import to_immutable
from .types import P


class Action(Generic[P]):
    """
    表示一個有類型和可選負載的動作。

    泛型參數:
        P: 負載的類型

    屬性:
        type: 動作的類型，通常是應用自定義 Enum 的成員，也可以是字串
        payload: 動作的負載數據（可選），對 Store 而言是不透明的

    Action 本身不會凍結負載，只有負載可雜湊時 Action 才可雜湊；
    create_action 會先用 to_immutable 轉換 dict、list 等負載。
    """
    __slots__ = ('type', 'payload')

    def __init__(self, type: Any, payload: Optional[P] = None):
        super().__setattr__('type', type)
        super().__setattr__('payload', payload)

    def __setattr__(self, name, value):
        raise AttributeError(f"Cannot modify immutable instance attribute '{name}'")

    def __delattr__(self, name):
        raise AttributeError(f"Cannot delete immutable instance attribute '{name}'")

    @property
    def tag(self) -> str:
        """類型的顯示名稱，Enum 成員使用其名稱。"""
        if isinstance(self.type, Enum):
            return self.type.name
        return str(self.type)

    def __eq__(self, other):
        if not isinstance(other, Action):
            return NotImplemented
        return self.type == other.type and self.payload == other.payload

    def __hash__(self):
        try:
            return hash((self.type, self.payload))
        except TypeError as err:
            raise TypeError(
                f"unhashable Action payload of type '{type(self.payload).__name__}'; "
                "use create_action or to_immutable to freeze it"
            ) from err

    def __str__(self):
        if self.payload is None:
            return self.tag
        return f"{self.tag}: {self.payload}"

    def __repr__(self):
        return f"Action(type={self.type!r}, payload={self.payload!r})"


def create_action(action_type: Any, prepare_fn: Optional[Callable[..., Any]] = None) -> Callable[..., Action[Any]]:
    """
    創建一個 Action 生成器函數。

    Args:
        action_type: Action 的類型標識符
        prepare_fn: 可選的預處理函數，用於在創建 Action 前處理輸入參數

    Returns:
        一個可調用的函數，用於生成指定類型的 Action

    範例:
        >>> increment = create_action(Counter.INCREMENT)
        >>> increment()
        Action(type=<Counter.INCREMENT: 1>, payload=None)
        >>>
        >>> plus = create_action(Counter.PLUS, lambda amount: amount)
        >>> plus(5)
        Action(type=<Counter.PLUS: 2>, payload=5)
    """
    def action_creator(*args: Any, **kwargs: Any) -> Action[Any]:
        if prepare_fn:
            return Action(action_type, to_immutable(prepare_fn(*args, **kwargs)))
        if len(args) == 1 and not kwargs:
            return Action(action_type, to_immutable(args[0]))
        if args or kwargs:
            payload: Dict[Union[int, str], Any] = dict(enumerate(args))
            payload.update(kwargs)
            return Action(action_type, to_immutable(payload))
        # 無參數，無負載
        return Action(action_type)

    # 添加 type 屬性以便於識別
    action_creator.type = action_type  # type: ignore[attr-defined]

    return action_creator
