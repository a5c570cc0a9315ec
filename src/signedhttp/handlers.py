"""
响应处理器模块

每次请求在到达终态后恰好调用一个处理器:
    - on_success: 2xx 响应，参数为 requests.Response
    - on_failure: 传输层失败（超时、网络错误、非 2xx），参数为 APIClientError
    - on_exception: 提交或处理过程中的意外异常，缺省时退回 on_failure
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any, Callable

from signedhttp.exceptions import APIClientConfigurationError
from signedhttp.params import fix_key

logger = logging.getLogger(__name__)


class Outcome(enum.Enum):
    """请求终态的结果类型"""

    SUCCESS = "success"
    FAILURE = "failure"
    EXCEPTION = "exception"


@dataclass(frozen=True)
class ResponseHandlers:
    """
    响应处理器集合

    属性:
        on_success: 成功处理器
        on_failure: 失败处理器
        on_exception: 异常处理器

    异常:
        APIClientConfigurationError: 三个处理器都为空时抛出
    """

    on_success: Callable[[Any], Any] | None = None
    on_failure: Callable[[Any], Any] | None = None
    on_exception: Callable[[Any], Any] | None = None

    def __post_init__(self):
        if self.on_success is None and self.on_failure is None and self.on_exception is None:
            raise APIClientConfigurationError("At least one of on_success, on_failure, on_exception is required")

    @classmethod
    def from_mapping(cls, handlers: Mapping[str, Any]) -> ResponseHandlers:
        """从字典构建，键名支持 "on-success" 与 "on_success" 两种写法"""
        known = {f.name for f in fields(cls)}
        values = {fix_key(key): value for key, value in handlers.items()}
        unknown = sorted(set(values) - known)
        if unknown:
            raise APIClientConfigurationError(f"Unknown handler names: {', '.join(unknown)}")
        return cls(**values)

    def resolve(self, outcome: Outcome) -> Callable[[Any], Any] | None:
        if outcome is Outcome.SUCCESS:
            return self.on_success
        if outcome is Outcome.FAILURE:
            return self.on_failure
        return self.on_exception or self.on_failure

    def dispatch(self, outcome: Outcome, value: Any, request_id: str | None = None) -> Any:
        """
        调用与结果类型对应的处理器并返回其结果

        参数:
            outcome: 结果类型
            value: 响应对象或异常对象
            request_id: 请求 ID，仅用于日志

        返回:
            处理器的返回值；没有对应处理器时返回 None
        """
        handler = self.resolve(outcome)
        if handler is None:
            logger.warning(f"[{request_id}] No handler registered for {outcome.value} outcome, result dropped")
            return None
        logger.debug(f"[{request_id}] Dispatching {outcome.value} outcome")
        return handler(value)


def coerce_handlers(handlers: Any) -> ResponseHandlers:
    """
    把调用方传入的处理器统一为 ResponseHandlers

    异常:
        APIClientConfigurationError: 未传入处理器或类型无效时抛出
    """
    if handlers is None:
        raise APIClientConfigurationError("A handler set is required; refusing to submit a request with no observer")
    if isinstance(handlers, ResponseHandlers):
        return handlers
    if isinstance(handlers, Mapping):
        return ResponseHandlers.from_mapping(handlers)
    raise APIClientConfigurationError(f"Unsupported handler set type: {type(handlers).__name__}")


def _return_response(response):
    return response


def _raise_error(error):
    raise error


def default_handlers() -> ResponseHandlers:
    """默认处理器：成功时返回响应对象，失败和异常时重新抛出"""
    return ResponseHandlers(on_success=_return_response, on_failure=_raise_error, on_exception=_raise_error)
