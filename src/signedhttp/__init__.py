"""
signedhttp OAuth1 签名 REST 请求模块

把 (HTTP 方法, URI 模板, 调用选项) 转换为 OAuth1 签名请求，同步或异步发送，
并把结果路由到调用方提供的处理器

主要组件:
    - 参数转换: transform_params, substitute_uri
    - 请求组装: assemble
    - 请求构建: build_request
    - 请求执行: execute, execute_blocking, execute_async, CancellationHandle
    - 客户端: TransportClient, ClientProvider
    - 签名网关: SigningGateway, OAuth1SigningGateway
    - 调用入口: http_request, APIContext, define_method

使用示例:
    >>> from signedhttp import APIContext, ClientProvider, OAuthCredentials, default_handlers, define_method
    >>>
    >>> provider = ClientProvider()
    >>> get_account = define_method(
    ...     "GET", "accounts/{id}",
    ...     api=APIContext("https", "api.example.com", "2.0"),
    ...     handlers=default_handlers(),
    ...     provider=provider,
    ... )
    >>> response = get_account(OAuthCredentials("key", "secret"), params={"id": "0"})
"""

# 调用入口
from signedhttp.api import APIContext, define_method, http_request

# 组装、构建与执行
from signedhttp.assembler import assemble
from signedhttp.builder import build_request
from signedhttp.executor import (
    CancellationHandle,
    RequestState,
    execute,
    execute_async,
    execute_blocking,
)

# 客户端
from signedhttp.client import ClientProvider, TransportClient

# 处理器
from signedhttp.handlers import Outcome, ResponseHandlers, default_handlers

# 签名网关
from signedhttp.signing import OAuth1SigningGateway, SigningGateway

# 数据模型
from signedhttp.models import (
    BodyKind,
    BodyPart,
    BuiltRequest,
    CallOptions,
    Cookie,
    OAuthCredentials,
    ProcessedRequest,
    RequestBody,
)

# 参数转换
from signedhttp.params import substitute_uri, transform_params

# 异常类
from signedhttp.exceptions import (
    APIClientBuildError,
    APIClientConfigurationError,
    APIClientError,
    APIClientHTTPError,
    APIClientNetworkError,
    APIClientTemplateError,
    APIClientTimeoutError,
    APIClientValidationError,
)

__all__ = [
    # 调用入口
    "http_request",
    "APIContext",
    "define_method",
    # 流水线
    "assemble",
    "build_request",
    "execute",
    "execute_blocking",
    "execute_async",
    "CancellationHandle",
    "RequestState",
    # 客户端
    "TransportClient",
    "ClientProvider",
    # 处理器
    "ResponseHandlers",
    "Outcome",
    "default_handlers",
    # 签名
    "SigningGateway",
    "OAuth1SigningGateway",
    # 数据模型
    "CallOptions",
    "Cookie",
    "OAuthCredentials",
    "BodyPart",
    "BodyKind",
    "RequestBody",
    "ProcessedRequest",
    "BuiltRequest",
    # 参数转换
    "transform_params",
    "substitute_uri",
    # 异常
    "APIClientError",
    "APIClientValidationError",
    "APIClientConfigurationError",
    "APIClientTemplateError",
    "APIClientBuildError",
    "APIClientHTTPError",
    "APIClientNetworkError",
    "APIClientTimeoutError",
]

__version__ = "0.1.0"
