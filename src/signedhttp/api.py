"""调用入口模块

    - http_request: 单次签名请求的完整流程（组装 -> 构建 -> 执行）
    - APIContext: API 的协议、主机和版本，用于拼接资源 URI
    - define_method: 由 (HTTP 方法, 资源路径, 默认选项) 生成可调用的 API 方法
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable

from signedhttp.assembler import assemble
from signedhttp.builder import build_request
from signedhttp.client import ClientProvider, TransportClient
from signedhttp.exceptions import APIClientConfigurationError
from signedhttp.executor import execute
from signedhttp.handlers import coerce_handlers
from signedhttp.models import CallOptions
from signedhttp.signing import SigningGateway
from signedhttp.utils import sanitize_url

logger = logging.getLogger(__name__)


def http_request(
    verb: str,
    uri_template: str,
    options: CallOptions | None = None,
    provider: ClientProvider | None = None,
    gateway: SigningGateway | None = None,
    **kwargs,
) -> Any:
    """
    对 URI 执行一次签名请求

    参数:
        verb: HTTP 方法（GET、POST 等）
        uri_template: 包含 {name} 占位符的 URI 模板
        options: 调用选项
        provider: 共享客户端提供者，options.client 为空时使用
        gateway: 签名网关，None 时使用 OAuth1SigningGateway
        **kwargs: 额外的调用选项，覆盖 options 中的同名字段

    返回:
        同步模式下返回处理器的结果，异步模式下返回 CancellationHandle

    异常:
        APIClientConfigurationError: 缺少处理器或客户端来源
        APIClientTemplateError: URI 模板存在未匹配的占位符
        APIClientBuildError: 请求体等无法构建

    示例:
        >>> http_request(
        ...     "GET",
        ...     "https://api.example.com/2.0/accounts/{id}",
        ...     CallOptions(params={"id": "0"}, handlers=default_handlers(), credentials=creds),
        ...     provider=provider,
        ... )
    """
    options = options or CallOptions()
    if kwargs:
        options = options.merge(**kwargs)

    # 先检查处理器，避免在没有观察者的情况下做任何工作
    handlers = coerce_handlers(options.handlers)
    client = _resolve_client(options, provider)

    processed = assemble(verb, uri_template, options, gateway)
    request = build_request(processed.verb, processed.uri, **processed.args)
    logger.debug(
        f"Dispatching {processed.verb} {sanitize_url(processed.uri)} "
        f"in {'async' if options.is_async else 'blocking'} mode"
    )
    return execute(client, request, handlers, is_async=options.is_async)


def _resolve_client(options: CallOptions, provider: ClientProvider | None) -> TransportClient:
    if options.client is not None:
        return options.client
    if provider is not None:
        return provider.get_client()
    raise APIClientConfigurationError("Either a client option or a ClientProvider is required")


@dataclass(frozen=True)
class APIContext:
    """
    API 上下文

    属性:
        protocol: 协议，如 "https"
        host: 主机名，如 "api.example.com"
        version: API 版本，如 "2.0"，为空时不拼接
    """

    protocol: str
    host: str
    version: str | None = None

    def make_uri(self, resource_path: str) -> str:
        base = f"{self.protocol}://{self.host}"
        if self.version:
            base = f"{base}/{self.version}"
        return f"{base}/{resource_path.lstrip('/')}"


def define_method(verb: str, resource_path: str, **defaults) -> Callable[..., Any]:
    """
    定义一个 API 方法

    参数:
        verb: HTTP 方法
        resource_path: 相对于 API 上下文的资源路径，可包含占位符
        **defaults: 默认选项，除 CallOptions 字段外还支持 api、provider、gateway

    返回:
        method(credentials, **kwargs) 函数，kwargs 覆盖默认选项，credentials 覆盖两者

    示例:
        >>> list_accounts = define_method(
        ...     "GET", "accounts",
        ...     api=APIContext("https", "api.example.com", "2.0"),
        ...     handlers=default_handlers(),
        ...     provider=provider,
        ... )
        >>> list_accounts(creds, params={"limit": 10})
    """

    def api_method(credentials, **kwargs):
        merged = {**defaults, **kwargs}
        api = merged.pop("api", None)
        provider = merged.pop("provider", None)
        gateway = merged.pop("gateway", None)
        if api is None:
            raise APIClientConfigurationError(f"{verb} {resource_path}: an 'api' context is required")

        merged["credentials"] = credentials
        options = CallOptions.from_kwargs(**merged)
        return http_request(verb, api.make_uri(resource_path), options, provider=provider, gateway=gateway)

    path_name = re.sub(r"\W+", "_", resource_path).strip("_")
    api_method.__name__ = f"{verb.lower()}_{path_name}"
    api_method.__doc__ = f"{verb.upper()} {resource_path}"
    return api_method
