"""请求组装模块

把 (HTTP 方法, URI 模板, CallOptions) 组装为 ProcessedRequest:
    1. 转换业务参数并合并到查询参数
    2. 渲染 URI 模板
    3. 调用签名网关生成 Authorization 请求头
    4. 按 HTTP 方法和是否存在请求体决定参数放在查询串还是请求体
    5. 只输出传输字段，控制字段（客户端、处理器、凭据、执行模式）不会进入参数包
"""

from __future__ import annotations

import logging

from requests.structures import CaseInsensitiveDict

from signedhttp.constants import (
    AUTHORIZATION_HEADER,
    CONTENT_TYPE_HEADER,
    FORM_CONTENT_TYPE,
    HTTP_METHOD_GET,
    HTTP_METHODS,
)
from signedhttp.exceptions import APIClientValidationError
from signedhttp.models import CallOptions, ProcessedRequest, RequestBody
from signedhttp.params import substitute_uri, transform_params
from signedhttp.signing import OAuth1SigningGateway, SigningGateway
from signedhttp.utils import sanitize_dict, sanitize_url

logger = logging.getLogger(__name__)


def assemble(
    verb: str,
    uri_template: str,
    options: CallOptions,
    gateway: SigningGateway | None = None,
) -> ProcessedRequest:
    """
    组装一次调用的最终请求参数

    参数:
        verb: HTTP 方法，不区分大小写
        uri_template: 包含 {name} 占位符的 URI 模板
        options: 调用选项
        gateway: 签名网关，None 时使用 OAuth1SigningGateway

    返回:
        ProcessedRequest，args 中只包含 headers、query、body、cookies、proxy、auth、timeout

    放置规则:
        - GET: 合并后的参数作为查询串，显式请求体原样透传
        - 非 GET 且没有显式请求体: 合并后的参数作为表单请求体，不再发送查询串
        - 非 GET 且有显式请求体: 合并后的参数作为查询串，请求体为显式请求体

    异常:
        APIClientValidationError: HTTP 方法不受支持
        APIClientTemplateError: URI 模板存在未匹配的占位符
        APIClientBuildError: 显式请求体类型无法识别
    """
    verb = verb.upper()
    if verb not in HTTP_METHODS:
        raise APIClientValidationError(f"Unsupported HTTP method: {verb}")
    gateway = gateway or OAuth1SigningGateway()

    # 步骤1: 规范参数优先于显式查询参数
    params = transform_params(options.params)
    query = {**(options.query or {}), **params}

    # 步骤2: 渲染 URI
    final_uri = substitute_uri(uri_template, params)

    # 步骤3: 签名
    headers = CaseInsensitiveDict(options.headers or {})
    if options.credentials is not None:
        signed_params = gateway.sign(options.credentials, verb, final_uri, query)
        headers[AUTHORIZATION_HEADER] = gateway.render_auth_header(signed_params)
    else:
        logger.debug(f"No credentials supplied, {verb} {sanitize_url(final_uri)} will be sent unsigned")

    # 步骤4: 放置规则，查询串与请求体互斥
    if verb == HTTP_METHOD_GET:
        body = options.body
    elif options.body is None:
        headers[CONTENT_TYPE_HEADER] = FORM_CONTENT_TYPE
        body = query
        query = {}
    else:
        body = options.body

    args = {
        "headers": headers,
        "query": query or None,
        "body": RequestBody.infer(body, headers.get(CONTENT_TYPE_HEADER)),
        "cookies": options.cookies,
        "proxy": options.proxy,
        "auth": options.auth,
        "timeout": options.timeout,
    }
    # 步骤5: 丢弃空字段
    args = {key: value for key, value in args.items() if value is not None}

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            f"Assembled {verb} {sanitize_url(final_uri)}: "
            f"headers={sanitize_dict(dict(headers))}, query={sanitize_dict(args.get('query'))}"
        )
    return ProcessedRequest(verb=verb, uri=final_uri, args=args)
