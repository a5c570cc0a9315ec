"""请求构建模块

把组装器输出的参数包转换为传输层可直接发送的 BuiltRequest（基于 requests.PreparedRequest）。

请求体按 BodyKind 处理:
    - MULTIPART: 每个 BodyPart 独立附加，保持顺序
    - FORM: 每个字段作为独立命名的表单参数
    - RAW: 字符串按需 URL 编码后以 UTF-8 发送，字节串原样发送
    - STREAM: 流或文件对象直接交给传输层，不读入内存
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from http.cookiejar import DefaultCookiePolicy
from typing import Any
from urllib.parse import quote, quote_plus

import requests
from requests.auth import AuthBase, HTTPBasicAuth, HTTPDigestAuth
from requests.cookies import RequestsCookieJar, create_cookie
from requests.structures import CaseInsensitiveDict

from signedhttp.constants import AUTHORIZATION_HEADER, CONTENT_TYPE_HEADER, COOKIE_HEADER, FORM_CONTENT_TYPE
from signedhttp.exceptions import APIClientBuildError
from signedhttp.models import BodyKind, BuiltRequest, Cookie, RequestBody
from signedhttp.params import flatten_value

logger = logging.getLogger(__name__)


def build_request(
    verb: str,
    url: str,
    headers: Mapping[str, Any] | None = None,
    query: Mapping[str, Any] | None = None,
    body: Any = None,
    cookies: list | tuple | None = None,
    proxy: str | Mapping[str, Any] | None = None,
    auth: Any = None,
    timeout: float | None = None,
) -> BuiltRequest:
    """
    构建可发送的请求

    参数:
        verb: HTTP 方法
        url: 最终 URL
        headers: 请求头，集合值逗号拼接，其余值转为字符串
        query: 查询参数，取值规则同请求头
        body: 请求体，RequestBody 或原始值（原始值会先推断种类）
        cookies: Cookie 或字典组成的列表
        proxy: 代理 URL 或 {host, port, protocol, user, password}
        auth: AuthBase、(user, password) 或 {type, user, password}
        timeout: 单次请求超时（秒）

    返回:
        BuiltRequest 实例

    异常:
        APIClientBuildError: 请求体、代理或认证配置无法识别时抛出

    缺省的组件不做任何处理，不会报错。
    """
    request_headers = CaseInsensitiveDict()
    for key, value in (headers or {}).items():
        request_headers[str(key)] = flatten_value(value)

    params = [(str(key), flatten_value(value)) for key, value in query.items()] if query else None

    request_body = RequestBody.infer(body, request_headers.get(CONTENT_TYPE_HEADER))
    data, files = _resolve_body(request_body, request_headers) if request_body is not None else (None, None)

    request_auth = _resolve_auth(auth) if auth is not None else None
    if request_auth is not None and AUTHORIZATION_HEADER in request_headers:
        logger.warning("Transport auth replaces the signed Authorization header")

    # 调用方自带的 Cookie 头会阻止 cookielib 写入，先取出，准备完成后再合并
    caller_cookie = request_headers.pop(COOKIE_HEADER, None) if cookies else None

    request = requests.Request(
        method=verb.upper(),
        url=url,
        headers=request_headers,
        params=params,
        data=data,
        files=files,
        cookies=_build_cookie_jar(cookies) if cookies else None,
        auth=request_auth,
    )
    prepared = request.prepare()

    if caller_cookie:
        record_cookie = prepared.headers.get(COOKIE_HEADER)
        prepared.headers[COOKIE_HEADER] = "; ".join(filter(None, [caller_cookie, record_cookie]))

    return BuiltRequest(
        prepared=prepared,
        timeout=timeout,
        proxies=_resolve_proxy(proxy) if proxy else None,
        body_kind=request_body.kind if request_body is not None else None,
    )


def _resolve_body(request_body: RequestBody, headers: CaseInsensitiveDict) -> tuple[Any, Any]:
    """返回 requests.Request 使用的 (data, files)"""
    kind, value = request_body.kind, request_body.value

    if kind is BodyKind.MULTIPART:
        # boundary 由 requests 生成并写入 Content-Type
        headers.pop(CONTENT_TYPE_HEADER, None)
        return None, [(part.name, part.as_file_tuple()) for part in value]

    if kind is BodyKind.FORM:
        return [(str(key), flatten_value(field_value)) for key, field_value in value.items()], None

    if kind is BodyKind.RAW:
        if isinstance(value, str):
            content_type = headers.get(CONTENT_TYPE_HEADER, "")
            if content_type.lower().startswith(FORM_CONTENT_TYPE):
                value = quote_plus(value, safe="*")
            return value.encode("utf-8"), None
        return bytes(value), None

    if kind is BodyKind.STREAM:
        return value, None

    raise APIClientBuildError(f"Unsupported body kind: {kind}")


class AttachAllCookiePolicy(DefaultCookiePolicy):
    """
    附加全部 Cookie 的策略

    调用方显式传入的每条 Cookie 记录都随请求发送，不按域名、路径、secure 标记
    或过期时间过滤。
    """

    def return_ok(self, cookie, request):
        return True

    def domain_return_ok(self, domain, request):
        return True

    def path_return_ok(self, path, request):
        return True


def _build_cookie_jar(cookies: list | tuple) -> RequestsCookieJar:
    jar = RequestsCookieJar(policy=AttachAllCookiePolicy())
    now = int(time.time())
    for record in cookies:
        if isinstance(record, Mapping):
            record = Cookie.from_mapping(record)
        if not isinstance(record, Cookie):
            raise APIClientBuildError(f"Unsupported cookie type: {type(record).__name__}")

        jar.set_cookie(
            create_cookie(
                record.name,
                record.value,
                domain=record.domain,
                path=record.path,
                secure=record.secure,
                expires=now + record.max_age,
            )
        )
    return jar


def _resolve_proxy(proxy: str | Mapping[str, Any]) -> dict[str, str]:
    """把代理配置转换为 requests 的 proxies 字典"""
    if isinstance(proxy, str):
        proxy_url = proxy
    elif isinstance(proxy, Mapping):
        host = proxy.get("host")
        if not host:
            raise APIClientBuildError("proxy mapping requires a 'host'")
        protocol = proxy.get("protocol", "http")
        port = proxy.get("port")
        netloc = f"{host}:{port}" if port else str(host)
        if proxy.get("user"):
            credentials = quote(str(proxy["user"]), safe="")
            if proxy.get("password"):
                credentials = f"{credentials}:{quote(str(proxy['password']), safe='')}"
            netloc = f"{credentials}@{netloc}"
        proxy_url = f"{protocol}://{netloc}"
    else:
        raise APIClientBuildError(f"Unsupported proxy type: {type(proxy).__name__}")

    return {"http": proxy_url, "https": proxy_url}


def _resolve_auth(auth: Any) -> AuthBase:
    """
    解析传输层认证配置

    支持:
        - requests.auth.AuthBase 实例
        - (user, password) 元组，按 Basic 认证处理
        - {"type": "basic" | "digest", "user": ..., "password": ...}
    """
    if isinstance(auth, AuthBase):
        return auth
    if isinstance(auth, (tuple, list)) and len(auth) == 2:
        return HTTPBasicAuth(*auth)
    if isinstance(auth, Mapping):
        auth_type = str(auth.get("type", "basic")).lower()
        user, password = auth.get("user"), auth.get("password")
        if auth_type == "basic":
            return HTTPBasicAuth(user, password)
        if auth_type == "digest":
            return HTTPDigestAuth(user, password)
        raise APIClientBuildError(f"Unsupported auth type: {auth_type}")
    raise APIClientBuildError(f"Unsupported auth value: {type(auth).__name__}")
