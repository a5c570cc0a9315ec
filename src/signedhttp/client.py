"""传输客户端模块

提供:
    - TransportClient: 基于 requests.Session 的传输客户端，不跟随重定向，自带异步回调线程池
    - ClientProvider: 由调用方持有的共享客户端提供者，客户端最多构造一次
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

import requests

from signedhttp.constants import DEFAULT_MAX_WORKERS, DEFAULT_TIMEOUT
from signedhttp.exceptions import (
    APIClientError,
    APIClientHTTPError,
    APIClientNetworkError,
    APIClientTimeoutError,
)
from signedhttp.models import BuiltRequest
from signedhttp.utils import sanitize_headers, sanitize_url

logger = logging.getLogger(__name__)


class TransportClient:
    """
    传输客户端

    类属性:
        default_timeout: 默认超时时间（秒），可被单次请求的 timeout 覆盖
        max_workers: 异步请求使用的最大工作线程数
        verify: SSL 证书验证开关
        follow_redirects: 是否跟随重定向，固定为 False，3xx 响应按失败处理
        default_headers: 默认请求头，只补充请求中不存在的头
    """

    default_timeout: float = DEFAULT_TIMEOUT
    max_workers: int = DEFAULT_MAX_WORKERS
    verify: bool = True
    follow_redirects: bool = False
    default_headers: dict[str, str] = {}

    def __init__(
        self,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        verify: bool | None = None,
        max_workers: int | None = None,
    ):
        """
        初始化传输客户端

        参数:
            headers: 默认请求头（与类属性合并，实例级别优先）
            timeout: 默认超时时间（秒）
            verify: SSL 证书验证开关
            max_workers: 异步回调线程池大小
        """
        self.timeout = timeout if timeout is not None else self.default_timeout
        self.verify = verify if verify is not None else self.verify
        self.max_workers = max_workers if max_workers is not None else self.max_workers
        self.session_headers = {**self.default_headers, **(headers or {})}

        self.session = self._create_session()
        self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="signedhttp")
        self._closed = False
        self._close_lock = threading.Lock()
        self._worker_state = threading.local()

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.verify = self.verify
        return session

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, request: BuiltRequest, request_id: str | None = None) -> requests.Response:
        """
        发送请求并对结果分类

        参数:
            request: 已构建的请求
            request_id: 请求 ID，用于日志追踪

        返回:
            2xx 的 requests.Response 对象

        异常:
            APIClientTimeoutError: 请求超时
            APIClientHTTPError: 非 2xx 响应（包括未跟随的 3xx）
            APIClientNetworkError: 连接失败、DNS 解析失败等网络错误
        """
        prepared = request.prepared
        for key, value in self.session_headers.items():
            prepared.headers.setdefault(key, value)

        timeout = request.timeout if request.timeout is not None else self.timeout
        safe_url = sanitize_url(prepared.url)
        logger.info(f"[{request_id}] Starting {prepared.method} request to {safe_url}")
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"[{request_id}] Request headers: {sanitize_headers(prepared.headers)}, "
                f"body kind: {request.body_kind.value if request.body_kind else None}, timeout: {timeout}"
            )

        try:
            response = self.session.send(
                prepared,
                timeout=timeout,
                proxies=request.proxies or {},
                allow_redirects=self.follow_redirects,
                verify=self.verify,
            )
        except requests.exceptions.Timeout as e:
            error = APIClientTimeoutError(f"Request to {safe_url} timed out after {timeout}s")
            logger.error(f"[{request_id}] Request failed: {error}")
            raise error from e
        except requests.exceptions.RequestException as e:
            error = APIClientNetworkError(f"Request to {safe_url} failed: {e}")
            logger.error(f"[{request_id}] Request failed: {error}")
            raise error from e

        logger.info(f"[{request_id}] Received {response.status_code} response")
        logger.debug(f"[{request_id}] Response headers: {response.headers}")
        if not 200 <= response.status_code < 300:
            error = APIClientHTTPError(f"HTTP {response.status_code}: {response.reason}", response=response)
            logger.error(f"[{request_id}] Request failed: {error}")
            raise error
        return response

    def submit(self, fn: Callable[..., Any], *args, **kwargs) -> Future:
        """
        把任务提交到异步回调线程池

        异常:
            APIClientError: 客户端已关闭时抛出
        """
        if self._closed:
            raise APIClientError("Transport client is closed")
        return self._executor.submit(self._run_in_worker, fn, *args, **kwargs)

    def _run_in_worker(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        self._worker_state.active = True
        try:
            return fn(*args, **kwargs)
        finally:
            self._worker_state.active = False

    def _in_worker(self) -> bool:
        return getattr(self._worker_state, "active", False)

    def close(self):
        """
        关闭客户端，等待进行中的异步请求结束后释放线程池和连接池

        在客户端自己的工作线程上调用时（例如异步处理器中）无法等待线程池，
        此时只停止接收新任务，不等待其他进行中的请求
        """
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        in_worker = self._in_worker()
        try:
            self._executor.shutdown(wait=not in_worker)
        finally:
            self.session.close()
        logger.info(f"Transport client closed{' from a worker thread' if in_worker else ''}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class ClientProvider:
    """
    共享客户端提供者

    由调用方在进程启动时构造并显式传递，第一次 get_client() 时构造客户端，
    之后所有调用复用同一个实例。调用方也可以在单次请求中传入自己的客户端。

    参数:
        client_class: 客户端类，默认 TransportClient
        **client_kwargs: 传递给客户端构造函数的参数
    """

    client_class: type[TransportClient] = TransportClient

    def __init__(self, client_class: type[TransportClient] | None = None, **client_kwargs):
        self.client_class = client_class or self.client_class
        self.client_kwargs = client_kwargs
        self._client: TransportClient | None = None
        self._lock = threading.Lock()

    def get_client(self) -> TransportClient:
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = self.client_class(**self.client_kwargs)
                    logger.info(f"Created shared {self.client_class.__name__}")
        return self._client

    def close(self):
        """关闭已构造的客户端，之后的 get_client() 会重新构造"""
        with self._lock:
            client, self._client = self._client, None
        if client is not None:
            client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
