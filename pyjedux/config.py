"""
Store 的配置模型。
"""
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError
from typing_extensions import Literal

from .errors import ConfigurationError


class StoreOptions(BaseModel):
    """
    Store 的行為選項。

    Attributes:
        name: Store 名稱，用於日誌與錯誤訊息
        skip_unchanged: 為 True 時，reducer 返回同一個狀態引用則不通知訂閱者；
            預設為 False，也就是每次 dispatch 都會通知
        subscriber_errors: 訂閱者拋出異常時的處理方式。
            "propagate" 中斷本輪通知並把異常拋給 dispatch 的呼叫者；
            "report" 交給 ErrorHandler 記錄，其餘訂閱者照常被通知
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = "store"
    skip_unchanged: bool = False
    subscriber_errors: Literal["propagate", "report"] = "propagate"


def resolve_options(options: Optional[Union[StoreOptions, Mapping[str, Any]]]) -> StoreOptions:
    """
    將使用者傳入的選項正規化為 StoreOptions。

    Raises:
        ConfigurationError: 選項不合法時
    """
    if options is None:
        return StoreOptions()
    if isinstance(options, StoreOptions):
        return options
    try:
        return StoreOptions.model_validate(dict(options))
    except (TypeError, ValueError) as err:
        errors = err.errors() if isinstance(err, ValidationError) else str(err)
        raise ConfigurationError(
            "invalid store options",
            component="Store",
            errors=errors,
        ) from err
