# pyjedux/immutable_utils.py
from enum import Enum
from typing import Any

from immutables import Map
from pydantic import BaseModel


def to_immutable(obj: Any) -> Any:
    """將狀態或負載遞迴轉換為不可變形式 (包括 Pydantic 模型)"""
    if isinstance(obj, Map):
        return Map({k: to_immutable(v) for k, v in obj.items()})
    if isinstance(obj, BaseModel):
        return Map({k: to_immutable(v) for k, v in obj.model_dump().items()})
    if isinstance(obj, dict):
        return Map({k: to_immutable(v) for k, v in obj.items()})
    if isinstance(obj, (list, tuple)):
        return tuple(to_immutable(i) for i in obj)
    if isinstance(obj, (set, frozenset)):
        return frozenset(to_immutable(i) for i in obj)
    return obj


def to_dict(obj: Any) -> Any:
    """將 Map 及其巢狀結構轉換為普通 Python 結構，用於日誌輸出"""
    if isinstance(obj, Map):
        return {k: to_dict(v) for k, v in obj.items()}
    if isinstance(obj, BaseModel):
        return {k: to_dict(v) for k, v in obj.model_dump().items()}
    if isinstance(obj, dict):
        return {k: to_dict(v) for k, v in obj.items()}
    if isinstance(obj, tuple):
        return [to_dict(i) for i in obj]
    if isinstance(obj, frozenset):
        return [to_dict(i) for i in obj]
    if isinstance(obj, Enum):
        return obj.name
    return obj
