"""
PyJedux 計數器範例
"""

import logging
import threading
from enum import Enum, auto

from immutables import Map

from pyjedux import (
    Action,
    BatchMiddleware,
    LoggerMiddleware,
    ThunkMiddleware,
    batch_action,
    create_action,
    create_reducer,
    create_selector,
    create_store,
    on,
)


class Counter(Enum):
    INCREMENT = auto()
    PLUS = auto()
    RESET = auto()


# ============== 定義 Actions ==============
increment = create_action(Counter.INCREMENT)
plus = create_action(Counter.PLUS, lambda value: value)
reset = create_action(Counter.RESET, lambda value=0: value)

# ============== 定義初始狀態 ==============
initial_state = Map(count=0, history=())


# ============== 定義 Reducer ==============
def handle_increment(action, state):
    return state.set("count", state["count"] + 1).set("history", state["history"] + (str(action),))


def handle_plus(action, state):
    return state.set("count", state["count"] + action.payload).set("history", state["history"] + (str(action),))


def handle_reset(action, state):
    return state.set("count", action.payload).set("history", ())


counter_reducer = create_reducer(
    on(increment, handle_increment),
    on(plus, handle_plus),
    on(reset, handle_reset),
)

# ============== 定義 Selectors ==============
get_count = lambda state: state["count"]
get_history = lambda state: state["history"]
get_summary = create_selector(
    get_count, get_history,
    result_fn=lambda count, history: f"count={count} after {len(history)} step(s)",
)


def increment_if_odd(dispatch, get_state):
    """thunk：只有在計數為奇數時才遞增"""
    if get_state()["count"] % 2:
        dispatch(increment())


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    store = create_store(
        counter_reducer,
        initial_state,
        ThunkMiddleware(),
        BatchMiddleware(),
        LoggerMiddleware(),
        options={"name": "counter"},
    )

    store.select(get_count).subscribe(on_next=lambda count: print(f"計數變化: {count}"))
    unsubscribe = store.subscribe(lambda: print(get_summary(store.get_state())))

    print("\n==== 基本操作 ====")
    store.dispatch(increment())
    store.dispatch(plus(10))
    store.dispatch(Action(Counter.PLUS, 0))

    print("\n==== thunk 與批次 ====")
    store.dispatch(increment_if_odd)
    store.dispatch(batch_action([increment(), plus(5)]))

    unsubscribe()

    print("\n==== 多執行緒 ====")
    threads = [threading.Thread(target=lambda: store.dispatch(increment())) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    store.dispatch(reset())
    print("\n==== 最終狀態 ====")
    print(store.get_state())
