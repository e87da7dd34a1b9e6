import threading
from collections import OrderedDict
from typing import Any, Callable, Optional, Tuple

from .types import StateSelector


def create_selector(
    *selectors: StateSelector,
    result_fn: Optional[Callable[..., Any]] = None,
    maxsize: int = 128,
) -> StateSelector:
    """
    創建一個記憶化的複合選擇器。

    輸入選擇器的結果以 ``is`` 比較；所有輸入都與某次快取相同時直接返回
    快取的結果，不重新執行 result_fn。狀態本身是不可變的，所以引用不變即代表值不變。

    Args:
        *selectors: 多個輸入選擇器，從 state 中提取對應的值
        result_fn: 處理多個輸入值的函數，省略時返回輸入值的元組
        maxsize: 快取的最大條目數

    Returns:
        經過快取優化的 selector 函數，附帶 cache_clear() 方法
    """
    if not selectors:
        raise TypeError("create_selector() requires at least one input selector")

    # 單一選擇器且沒有 result_fn 時直接返回
    if result_fn is None and len(selectors) == 1:
        return selectors[0]

    compute: Callable[..., Any] = result_fn or (lambda *args: args)
    cache: "OrderedDict[Tuple[int, ...], Tuple[Tuple[Any, ...], Any]]" = OrderedDict()
    # 選擇器可能在多個執行緒的訂閱者中同時執行
    lock = threading.Lock()

    def selector(state: Any) -> Any:
        inputs = tuple(select(state) for select in selectors)
        key = tuple(id(value) for value in inputs)
        with lock:
            hit = cache.get(key)
            # 快取持有輸入的引用，因此命中的 id 不會被其他對象重用
            if hit is not None:
                cache.move_to_end(key)
                return hit[1]

        result = compute(*inputs)
        with lock:
            cache[key] = (inputs, result)
            while len(cache) > maxsize:
                cache.popitem(last=False)
        return result

    def cache_clear() -> None:
        with lock:
            cache.clear()

    selector.cache_clear = cache_clear  # type: ignore[attr-defined]
    selector.cache_size = lambda: len(cache)  # type: ignore[attr-defined]

    return selector
