"""
数据模型模块

定义一次签名请求从调用选项到可发送请求的各阶段数据结构:
    - CallOptions: 单次调用的输入选项（不可变）
    - Cookie / OAuthCredentials / BodyPart: 调用选项中的值对象
    - BodyKind / RequestBody: 请求体的封闭变体，组装时推断一次
    - ProcessedRequest: 组装器输出
    - BuiltRequest: 构建器输出，传输层可直接发送的请求
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from typing import Any

import requests

from signedhttp.constants import (
    DEFAULT_COOKIE_MAX_AGE,
    DEFAULT_COOKIE_PATH,
    DEFAULT_COOKIE_SECURE,
    MULTIPART_CONTENT_TYPE,
)
from signedhttp.exceptions import APIClientBuildError, APIClientValidationError
from signedhttp.params import fix_key


@dataclass(frozen=True)
class OAuthCredentials:
    """OAuth1 签名凭据，token 相关字段为空时按双腿（two-legged）方式签名"""

    consumer_key: str
    consumer_secret: str
    token: str | None = None
    token_secret: str | None = None

    def __repr__(self) -> str:
        # 避免密钥出现在日志中
        return f"OAuthCredentials(consumer_key={self.consumer_key!r}, token={self.token!r})"


@dataclass(frozen=True)
class Cookie:
    """
    Cookie 记录

    属性:
        domain: Cookie 所属域名
        name: 名称
        value: 值
        path: 路径，默认 "/"
        max_age: 存活时间（秒），默认 30
        secure: 是否仅通过 HTTPS 发送，默认 False
    """

    domain: str
    name: str
    value: str
    path: str = DEFAULT_COOKIE_PATH
    max_age: int = DEFAULT_COOKIE_MAX_AGE
    secure: bool = DEFAULT_COOKIE_SECURE

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Cookie:
        """从字典构建 Cookie，支持 "max-age" 与 "max_age" 两种写法，缺省字段使用默认值"""
        values = {fix_key(key): value for key, value in data.items() if value is not None}
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise APIClientValidationError(f"Unknown cookie fields: {', '.join(unknown)}")
        try:
            return cls(**values)
        except TypeError as e:
            raise APIClientValidationError(f"Invalid cookie record {dict(data)!r}: {e}") from e


@dataclass(frozen=True)
class BodyPart:
    """
    multipart 请求体中的单个部分

    属性:
        name: 表单字段名
        content: 内容，可以是 str、bytes 或文件对象
        filename: 文件名，为空时作为普通表单字段发送
        content_type: 该部分的内容类型
        headers: 该部分的额外头部
    """

    name: str
    content: Any
    filename: str | None = None
    content_type: str | None = None
    headers: Mapping[str, str] | None = None

    def as_file_tuple(self) -> tuple:
        """转换为 requests files 参数使用的元组"""
        if self.headers:
            return (self.filename, self.content, self.content_type, dict(self.headers))
        return (self.filename, self.content, self.content_type)


class BodyKind(enum.Enum):
    """请求体种类"""

    RAW = "raw"
    FORM = "form"
    MULTIPART = "multipart"
    STREAM = "stream"


@dataclass(frozen=True)
class RequestBody:
    """带种类标记的请求体"""

    kind: BodyKind
    value: Any

    @classmethod
    def infer(cls, value: Any, content_type: str | None = None) -> RequestBody | None:
        """
        根据内容类型和值的形态推断请求体种类

        优先级:
            1. 内容类型为 multipart/form-data，或值由 BodyPart 组成 -> MULTIPART
            2. 映射 -> FORM
            3. str / bytes -> RAW
            4. 具有 read 方法的流或文件对象 -> STREAM

        参数:
            value: 调用方提供的请求体，None 表示没有请求体
            content_type: 生效的 Content-Type 请求头

        返回:
            RequestBody 实例，value 为 None 时返回 None

        异常:
            APIClientBuildError: 值的形态无法识别时抛出
        """
        if value is None:
            return None
        if isinstance(value, RequestBody):
            return value

        is_multipart = (content_type or "").lower().startswith(MULTIPART_CONTENT_TYPE)
        if is_multipart or _is_part_sequence(value):
            parts = [value] if isinstance(value, BodyPart) else value
            if not isinstance(parts, (list, tuple)) or not all(isinstance(part, BodyPart) for part in parts):
                raise APIClientBuildError(
                    f"multipart body must be a BodyPart or a sequence of BodyPart, got {type(value).__name__}"
                )
            return cls(BodyKind.MULTIPART, tuple(parts))

        if isinstance(value, Mapping):
            return cls(BodyKind.FORM, value)
        if isinstance(value, (str, bytes, bytearray)):
            return cls(BodyKind.RAW, value)
        if callable(getattr(value, "read", None)):
            return cls(BodyKind.STREAM, value)

        raise APIClientBuildError(f"Unsupported request body type: {type(value).__name__}")


def _is_part_sequence(value: Any) -> bool:
    if isinstance(value, BodyPart):
        return True
    return isinstance(value, (list, tuple)) and bool(value) and all(isinstance(v, BodyPart) for v in value)


# 选项别名，兼容旧的调用方式
_OPTION_ALIASES = {
    "oauth_creds": "credentials",
    "callbacks": "handlers",
    "async": "is_async",
}


@dataclass(frozen=True)
class CallOptions:
    """
    单次 API 调用的选项

    属性:
        params: 业务参数，会被转换为规范参数并参与 URI 渲染
        query: 显式查询参数，与规范参数合并（规范参数优先）
        body: 显式请求体
        headers: 请求头
        cookies: Cookie 列表，元素为 Cookie 或字典
        credentials: 签名凭据，交给签名网关使用
        proxy: 代理配置，URL 字符串或 {host, port, protocol, user, password}
        auth: 传输层认证，AuthBase、(user, password) 或 {type, user, password}
        timeout: 单次请求超时（秒），覆盖客户端默认值
        is_async: 是否异步执行
        handlers: 响应处理器集合
        client: 本次调用使用的传输客户端，为空时由 ClientProvider 提供
    """

    params: Mapping[str, Any] | None = None
    query: Mapping[str, Any] | None = None
    body: Any = None
    headers: Mapping[str, Any] | None = None
    cookies: tuple | list | None = None
    credentials: Any = None
    proxy: str | Mapping[str, Any] | None = None
    auth: Any = None
    timeout: float | None = None
    is_async: bool = False
    handlers: Any = None
    client: Any = None

    @classmethod
    def from_kwargs(cls, **kwargs) -> CallOptions:
        """
        从关键字参数构建选项

        选项名支持连字符写法（如 "oauth-creds"），并兼容 oauth_creds、callbacks、async 等别名

        异常:
            APIClientValidationError: 存在未知选项时抛出
        """
        return cls(**normalize_options(kwargs))

    def merge(self, **overrides) -> CallOptions:
        """返回合并了覆盖项的新选项对象"""
        return replace(self, **normalize_options(overrides))


def normalize_options(kwargs: Mapping[str, Any]) -> dict[str, Any]:
    """把调用方的选项名规范化为 CallOptions 字段名，存在未知选项时抛出 APIClientValidationError"""
    known = {f.name for f in fields(CallOptions)}
    values = {}
    unknown = []
    for key, value in kwargs.items():
        name = fix_key(key)
        name = _OPTION_ALIASES.get(name, name)
        if name not in known:
            unknown.append(key)
            continue
        values[name] = value

    if unknown:
        raise APIClientValidationError(f"Unknown call options: {', '.join(sorted(unknown))}")
    return values


@dataclass(frozen=True)
class ProcessedRequest:
    """
    组装器输出

    属性:
        verb: 大写的 HTTP 方法
        uri: 占位符已渲染的最终 URI
        args: 仅包含传输字段的参数包（headers、query、body、cookies、proxy、auth、timeout）
    """

    verb: str
    uri: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass
class BuiltRequest:
    """
    可直接发送的请求

    属性:
        prepared: requests.PreparedRequest 对象
        timeout: 单次请求超时（秒），None 时使用客户端默认值
        proxies: requests 代理字典
        body_kind: 请求体种类，没有请求体时为 None
    """

    prepared: requests.PreparedRequest
    timeout: float | None = None
    proxies: dict[str, str] | None = None
    body_kind: BodyKind | None = None

    @property
    def method(self) -> str:
        return self.prepared.method

    @property
    def url(self) -> str:
        return self.prepared.url

    @property
    def headers(self):
        return self.prepared.headers

    @property
    def body(self):
        return self.prepared.body
