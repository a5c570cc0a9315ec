"""
签名 HTTP 客户端异常模块

定义请求流水线的全部异常类。

分类:
    - 提交前的致命错误（配置错误、模板错误、构建错误）直接抛给调用方
    - 传输层失败（超时、网络错误、非 2xx 响应）不会抛出，而是交给 on_failure 处理器
"""

from __future__ import annotations

import requests


class APIClientError(Exception):
    """
    API 客户端异常基类

    所有自定义异常的基类，用于统一捕获和处理客户端相关错误
    """


class APIClientValidationError(APIClientError):
    """
    输入验证异常

    当调用参数、选项名称等输入数据验证失败时抛出此异常
    """


class APIClientConfigurationError(APIClientValidationError):
    """
    配置错误

    缺少处理器、缺少客户端来源或缺少 API 上下文时抛出。
    总是在任何网络活动之前抛出，且不会重试。
    """


class APIClientTemplateError(APIClientValidationError):
    """
    URI 模板渲染异常

    当 URI 模板中存在无法匹配参数的占位符时抛出

    参数:
        message: 错误描述信息
        missing: 未匹配的占位符名称列表

    属性:
        missing: 未匹配的占位符名称列表，保持模板中的出现顺序
    """

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = missing or []


class APIClientBuildError(APIClientError):
    """
    请求构建异常

    当请求体类型无法识别、认证配置无效时抛出，发生在请求提交之前
    """


class APIClientHTTPError(APIClientError):
    """
    HTTP 错误响应异常

    当服务器返回非 2xx 状态码时产生此异常（重定向不会被跟随，3xx 同样视为失败）

    参数:
        message: 错误描述信息
        response: 原始的 requests.Response 对象（可选）

    属性:
        response: 保存原始响应对象，便于获取详细错误信息
        status_code: HTTP 状态码
    """

    def __init__(self, message: str, response: requests.Response | None = None):
        super().__init__(message)
        self.response = response
        self.status_code = response.status_code if response is not None else None


class APIClientNetworkError(APIClientError):
    """
    网络连接异常

    当网络连接失败、DNS 解析失败等网络层面问题时产生此异常
    """


class APIClientTimeoutError(APIClientError):
    """
    请求超时异常

    当请求执行时间超过设定的超时时间时产生此异常
    """


# 传输层失败：由执行器路由到 on_failure 处理器
TRANSPORT_FAILURES = (APIClientHTTPError, APIClientNetworkError, APIClientTimeoutError)
