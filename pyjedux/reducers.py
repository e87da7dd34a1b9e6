from typing import Any, Callable, Dict, Mapping

from immutables import Map

from .types import Reducer, S

Handler = Callable[[Any, S], S]


def on(action_creator_or_type: Any, handler: Handler) -> Dict[Any, Handler]:
    """
    創建一個 action 類型與處理函式的映射。

    Args:
        action_creator_or_type: Action 創建器函式，或 Action 類型本身（Enum 成員或字串）。
        handler: 處理該 Action 的函式，接收 (action, state) 並返回新狀態。

    Returns:
        一個包含 {action_type: handler} 的字典。
    """
    if callable(action_creator_or_type) and hasattr(action_creator_or_type, 'type'):
        action_type = action_creator_or_type.type
    else:
        action_type = action_creator_or_type
    return {action_type: handler}


def create_reducer(*handlers: Mapping[Any, Handler]) -> Reducer[Any]:
    """
    由多個 on(...) 映射組合出一個 reducer。

    沒有對應處理器的 action 會讓 reducer 返回同一個狀態引用。

    Args:
        *handlers: on 函式返回的映射，或 (action_type, handler) 元組。

    Returns:
        簽名為 (action, state) -> state 的 reducer。
    """
    action_handlers: Dict[Any, Handler] = {}
    for handler in handlers:
        if isinstance(handler, tuple) and len(handler) == 2:
            action_type, handler_fn = handler
            action_handlers[action_type] = handler_fn
        else:
            action_handlers.update(handler)

    def reducer(action: Any, state: Any) -> Any:
        handler = action_handlers.get(getattr(action, 'type', None))
        if handler is None:
            return state
        return handler(action, state)

    reducer.handlers = action_handlers  # type: ignore[attr-defined]
    return reducer


def combine_reducers(reducers: Mapping[str, Reducer[Any]]) -> Reducer[Map]:
    """
    把多個功能模組的 reducer 合併成一個作用在 immutables.Map 上的 reducer。

    每個鍵對應的子狀態只交給該鍵的 reducer 處理。沒有任何子狀態變化時
    返回原本的 Map，讓呼叫者可以用 ``is`` 判斷是否有變化。

    Args:
        reducers: 功能模組鍵到 reducer 的映射。

    Returns:
        合併後的 reducer。
    """
    feature_reducers = dict(reducers)

    def reducer(action: Any, state: Map) -> Map:
        mutation = None
        for feature_key, feature_reducer in feature_reducers.items():
            prev_substate = state.get(feature_key)
            next_substate = feature_reducer(action, prev_substate)
            if next_substate is not prev_substate:
                if mutation is None:
                    mutation = state.mutate()
                mutation[feature_key] = next_substate
        if mutation is None:
            return state
        return mutation.finish()

    reducer.reducers = feature_reducers  # type: ignore[attr-defined]
    return reducer
