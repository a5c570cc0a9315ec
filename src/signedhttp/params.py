"""参数转换模块

将调用方风格的参数字典（连字符命名、集合值）转换为线上规范参数，
并把规范参数代入 URI 模板中的 {name} 占位符。
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from signedhttp.constants import COLLECTION_JOINER, PARAM_SEPARATOR, WIRE_SEPARATOR
from signedhttp.exceptions import APIClientTemplateError

logger = logging.getLogger(__name__)

# 匹配 {variable_name} 或 {variable-name} 格式的占位符
PLACEHOLDER_PATTERN = re.compile(r"\{([\w-]+)\}")


def fix_key(name: str) -> str:
    """把参数名中的连字符替换为下划线"""
    return str(name).replace(PARAM_SEPARATOR, WIRE_SEPARATOR)


def is_collection(value: Any) -> bool:
    # 字符串、字节串和映射不按集合处理
    return isinstance(value, Iterable) and not isinstance(value, (str, bytes, bytearray, Mapping))


def _join(items: Iterable) -> str:
    # None 元素按空字符串拼接
    return COLLECTION_JOINER.join("" if item is None else str(item) for item in items)


def fix_value(value: Any) -> Any:
    """
    集合值按迭代顺序用逗号拼接为字符串，其他值原样返回

    示例:
        >>> fix_value(["a", "b"])
        'a,b'
        >>> fix_value(42)
        42
    """
    if is_collection(value):
        return _join(value)
    return value


def flatten_value(value: Any) -> str:
    """请求头、查询参数、表单字段使用的取值规则：集合逗号拼接，None 为空字符串，其余标量转为字符串"""
    if value is None:
        return ""
    if is_collection(value):
        return _join(value)
    return str(value)


def transform_params(params: Mapping[str, Any] | None) -> dict[str, Any]:
    """
    把参数字典转换为规范参数

    参数:
        params: 调用方传入的参数字典，如 {"screen-name": ["a", "b"]}

    返回:
        规范参数字典，如 {"screen_name": "a,b"}，键的顺序与输入一致
    """
    if not params:
        return {}
    return {fix_key(key): fix_value(value) for key, value in params.items()}


def substitute_uri(template: str, params: Mapping[str, Any] | None) -> str:
    """
    渲染 URI 模板中的占位符

    占位符名称同样经过 fix_key 处理，所以 {screen-name} 与 {screen_name} 等价。
    与参数不同，占位符不会从参数中移除，参数仍会进入查询串或请求体。

    参数:
        template: 包含占位符的 URI 模板，如 "https://api.example.com/2.0/accounts/{id}"
        params: 规范参数字典

    返回:
        渲染后的 URI

    异常:
        APIClientTemplateError: 存在无法匹配的占位符时抛出
    """
    params = params or {}
    missing = [name for name in PLACEHOLDER_PATTERN.findall(template) if fix_key(name) not in params]
    if missing:
        raise APIClientTemplateError(
            f"URI template {template!r} has unmatched placeholders: {', '.join(missing)}",
            missing=missing,
        )

    def replace_match(match):
        return str(params[fix_key(match.group(1))])

    uri = PLACEHOLDER_PATTERN.sub(replace_match, template)
    logger.debug(f"Rendered URI template {template!r} -> {uri!r}")
    return uri
