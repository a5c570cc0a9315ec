"""工具函数模块

提供日志脱敏、请求 ID 生成等实用功能
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from signedhttp.constants import REQUEST_ID_PREFIX


# 默认敏感请求头名称集合
DEFAULT_SENSITIVE_HEADERS = {
    "Authorization",
    "Cookie",
    "Proxy-Authorization",
    "X-API-Key",
}

# 默认敏感参数名称集合，包含 OAuth1 签名参数
DEFAULT_SENSITIVE_PARAMS = {
    "oauth_signature",
    "oauth_token",
    "oauth_consumer_key",
    "oauth_verifier",
    "token",
    "password",
    "secret",
    "api_key",
    "access_token",
}


def sanitize_headers(
    headers: Mapping[str, Any] | None,
    sensitive_keys: set[str] | None = None,
    mask: str = "***",
) -> dict[str, Any]:
    """
    脱敏请求头中的敏感信息

    参数:
        headers: 原始请求头，可以是 dict 或 CaseInsensitiveDict
        sensitive_keys: 敏感键名集合，不区分大小写。None 时使用默认集合
        mask: 脱敏后的替换字符串

    返回:
        脱敏后的请求头字典（新字典，不修改原字典）

    示例:
        >>> sanitize_headers({"Authorization": "OAuth oauth_signature=abc", "Accept": "*/*"})
        {"Authorization": "***", "Accept": "*/*"}
    """
    if not headers:
        return {}
    if sensitive_keys is None:
        sensitive_keys = DEFAULT_SENSITIVE_HEADERS

    sensitive_keys_lower = {k.lower() for k in sensitive_keys}
    return {k: mask if k.lower() in sensitive_keys_lower else v for k, v in headers.items()}


def sanitize_url(
    url: str,
    sensitive_params: set[str] | None = None,
    mask: str = "***",
) -> str:
    """
    脱敏 URL 查询串中的敏感参数

    参数:
        url: 原始 URL
        sensitive_params: 敏感参数名集合，不区分大小写。None 时使用默认集合
        mask: 脱敏后的替换字符串

    返回:
        脱敏后的 URL

    示例:
        >>> sanitize_url("https://api.example.com/accounts?oauth_token=abc&limit=1")
        "https://api.example.com/accounts?oauth_token=***&limit=1"
    """
    if sensitive_params is None:
        sensitive_params = DEFAULT_SENSITIVE_PARAMS

    parsed = urlparse(url)
    if not parsed.query:
        return url

    sensitive_params_lower = {p.lower() for p in sensitive_params}
    params = parse_qs(parsed.query, keep_blank_values=True)

    sanitized_params = {}
    for key, values in params.items():
        if key.lower() in sensitive_params_lower:
            sanitized_params[key] = [mask] * len(values)
        else:
            sanitized_params[key] = values

    return urlunparse(parsed._replace(query=urlencode(sanitized_params, doseq=True)))


def sanitize_dict(
    data: Mapping[str, Any] | None,
    sensitive_keys: set[str] | None = None,
    mask: str = "***",
) -> dict[str, Any]:
    """
    递归脱敏字典中的敏感字段，用于记录组装后的请求参数

    参数:
        data: 原始数据
        sensitive_keys: 敏感键名集合，不区分大小写。None 时合并请求头和参数的默认集合
        mask: 脱敏后的替换字符串

    返回:
        脱敏后的字典（新字典，不修改原字典）
    """
    if not data:
        return {}
    if sensitive_keys is None:
        sensitive_keys = DEFAULT_SENSITIVE_HEADERS | DEFAULT_SENSITIVE_PARAMS

    sensitive_keys_lower = {k.lower() for k in sensitive_keys}

    result = {}
    for key, value in data.items():
        if isinstance(key, str) and key.lower() in sensitive_keys_lower:
            result[key] = mask
        elif isinstance(value, Mapping):
            result[key] = sanitize_dict(value, sensitive_keys, mask)
        else:
            result[key] = value
    return result


def generate_request_id(suffix=None) -> str:
    """生成全局唯一的请求 ID，格式为 REQ-<毫秒时间戳>-<8位十六进制>[-suffix]"""
    timestamp = int(time.time() * 1000)
    short_uuid = uuid.uuid4().hex[:8]
    request_id = f"{REQUEST_ID_PREFIX}-{timestamp}-{short_uuid}"
    if suffix is not None:
        request_id = f"{request_id}-{suffix}"
    return request_id
