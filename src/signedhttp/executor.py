"""请求执行器模块

提供两种执行方式，共用同一个“提交并路由”核心:
    - execute_blocking: 在调用线程上阻塞直到终态，返回处理器的结果
    - execute_async: 提交到传输客户端的线程池后立即返回 CancellationHandle，
      处理器在工作线程上执行，调用方拿不到处理器的返回值

状态流转: SUBMITTED -> COMPLETED | FAILED | CANCELLED
"""

from __future__ import annotations

import enum
import logging
import threading
from concurrent.futures import Future
from typing import Any

from signedhttp.client import TransportClient
from signedhttp.exceptions import TRANSPORT_FAILURES, APIClientConfigurationError, APIClientHTTPError
from signedhttp.handlers import Outcome, ResponseHandlers, coerce_handlers
from signedhttp.models import BuiltRequest
from signedhttp.utils import generate_request_id

logger = logging.getLogger(__name__)


class RequestState(enum.Enum):
    """单次请求的状态"""

    SUBMITTED = "submitted"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


_OUTCOME_STATES = {
    Outcome.SUCCESS: RequestState.COMPLETED,
    Outcome.FAILURE: RequestState.FAILED,
    Outcome.EXCEPTION: RequestState.FAILED,
}


class CancellationHandle:
    """
    异步请求的取消句柄

    cancel() 是尽力而为的：排队中的请求不会被发送；已经发出的请求无法撤回，
    但之后到达的响应会被关闭并丢弃，不再调用处理器。
    重复取消或取消已结束的请求不会报错。

    使用示例:
        >>> handle = execute_async(client, request, handlers)
        >>> handle.cancel()
        >>> handle()  # 与 cancel() 等价，再次调用为空操作
    """

    def __init__(self, request_id: str):
        self.request_id = request_id
        self._state = RequestState.SUBMITTED
        self._lock = threading.Lock()
        self._finished = threading.Event()
        self._future: Future | None = None

    def _attach(self, future: Future) -> None:
        self._future = future

    def _claim(self, state: RequestState) -> bool:
        """尝试把请求推进到终态，已被取消或已结束时返回 False"""
        with self._lock:
            if self._state is not RequestState.SUBMITTED:
                return False
            self._state = state
            return True

    def _mark_finished(self) -> None:
        self._finished.set()

    @property
    def state(self) -> RequestState:
        return self._state

    @property
    def done(self) -> bool:
        return self._state is not RequestState.SUBMITTED

    @property
    def cancelled(self) -> bool:
        return self._state is RequestState.CANCELLED

    def cancel(self) -> bool:
        """
        取消请求

        返回:
            本次调用确实完成取消时返回 True，其余情况（已取消、已结束）返回 False
        """
        if not self._claim(RequestState.CANCELLED):
            logger.debug(f"[{self.request_id}] Cancel ignored, request already {self._state.value}")
            return False

        if self._future is not None:
            self._future.cancel()
        self._mark_finished()
        logger.info(f"[{self.request_id}] Request cancelled")
        return True

    def __call__(self) -> bool:
        return self.cancel()

    def wait(self, timeout: float | None = None) -> bool:
        """等待请求到达终态（处理器已执行完毕或已取消），返回是否在超时前结束"""
        return self._finished.wait(timeout)

    def __repr__(self) -> str:
        return f"CancellationHandle(request_id={self.request_id!r}, state={self._state.value!r})"


def _discard(outcome: Outcome, value: Any) -> None:
    """关闭取消之后才到达的响应"""
    if outcome is Outcome.SUCCESS:
        value.close()
    elif isinstance(value, APIClientHTTPError) and value.response is not None:
        value.response.close()


def _submit_and_route(
    client: TransportClient,
    request: BuiltRequest,
    handlers: ResponseHandlers,
    request_id: str,
    handle: CancellationHandle | None = None,
) -> Any:
    """
    发送请求并把结果路由到恰好一个处理器

    执行步骤:
        1. 已取消的异步请求直接跳过
        2. 发送请求，按结果分类为 SUCCESS / FAILURE / EXCEPTION
        3. 异步模式下争夺终态，输给取消时丢弃结果
        4. 调用对应处理器并返回其结果
    """
    if handle is not None and handle.cancelled:
        logger.info(f"[{request_id}] Skipping cancelled request")
        return None

    try:
        outcome, value = Outcome.SUCCESS, client.send(request, request_id)
    except TRANSPORT_FAILURES as e:
        outcome, value = Outcome.FAILURE, e
    except Exception as e:
        logger.exception(f"[{request_id}] Request failed with unexpected error: {e}")
        outcome, value = Outcome.EXCEPTION, e

    if handle is None:
        return handlers.dispatch(outcome, value, request_id)

    if not handle._claim(_OUTCOME_STATES[outcome]):
        logger.info(f"[{request_id}] Discarding {outcome.value} outcome of cancelled request")
        _discard(outcome, value)
        return None

    try:
        return handlers.dispatch(outcome, value, request_id)
    finally:
        handle._mark_finished()


def _run_async(
    client: TransportClient,
    request: BuiltRequest,
    handlers: ResponseHandlers,
    request_id: str,
    handle: CancellationHandle,
) -> None:
    try:
        _submit_and_route(client, request, handlers, request_id, handle)
    except Exception as e:
        # 处理器自身抛出的异常只能记录，调用方不在这个线程上
        logger.exception(f"[{request_id}] Response handler raised: {e}")


def _check_preconditions(client: TransportClient | None, handlers: Any) -> ResponseHandlers:
    resolved = coerce_handlers(handlers)
    if client is None:
        raise APIClientConfigurationError("A transport client is required to execute a request")
    return resolved


def execute_blocking(
    client: TransportClient,
    request: BuiltRequest,
    handlers: ResponseHandlers | dict | None,
    request_id: str | None = None,
) -> Any:
    """
    同步执行请求

    参数:
        client: 传输客户端
        request: 已构建的请求
        handlers: 处理器集合，ResponseHandlers 或字典
        request_id: 请求 ID，None 时自动生成

    返回:
        被调用处理器的返回值

    异常:
        APIClientConfigurationError: 缺少处理器或客户端时抛出，不会发送任何请求
    """
    handlers = _check_preconditions(client, handlers)
    request_id = request_id or generate_request_id()
    return _submit_and_route(client, request, handlers, request_id)


def execute_async(
    client: TransportClient,
    request: BuiltRequest,
    handlers: ResponseHandlers | dict | None,
    request_id: str | None = None,
) -> CancellationHandle:
    """
    异步执行请求

    参数:
        client: 传输客户端，请求和处理器都在它的线程池中执行
        request: 已构建的请求
        handlers: 处理器集合，ResponseHandlers 或字典
        request_id: 请求 ID，None 时自动生成

    返回:
        CancellationHandle，立即返回

    异常:
        APIClientConfigurationError: 缺少处理器或客户端时抛出，不会发送任何请求
    """
    handlers = _check_preconditions(client, handlers)
    request_id = request_id or generate_request_id()
    handle = CancellationHandle(request_id)
    future = client.submit(_run_async, client, request, handlers, request_id, handle)
    handle._attach(future)
    logger.debug(f"[{request_id}] Submitted asynchronous {request.method} request")
    return handle


def execute(
    client: TransportClient,
    request: BuiltRequest,
    handlers: ResponseHandlers | dict | None,
    is_async: bool = False,
) -> Any:
    """按 is_async 选择 execute_async 或 execute_blocking"""
    if is_async:
        return execute_async(client, request, handlers)
    return execute_blocking(client, request, handlers)
