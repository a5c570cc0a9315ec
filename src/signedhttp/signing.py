"""签名网关模块

请求流水线只通过 SigningGateway 接口使用签名能力:
    - sign(credentials, verb, uri, query) -> 签名参数字典
    - render_auth_header(signed_params) -> Authorization 请求头字符串

OAuth1SigningGateway 基于 oauthlib 提供默认实现，签名算法、nonce 和时间戳均由 oauthlib 生成。
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

from oauthlib.common import Request as OAuthRequest
from oauthlib.oauth1 import SIGNATURE_HMAC, Client
from oauthlib.oauth1.rfc5849.parameters import prepare_headers

from signedhttp.constants import AUTHORIZATION_HEADER
from signedhttp.exceptions import APIClientValidationError
from signedhttp.models import OAuthCredentials
from signedhttp.params import fix_key, flatten_value
from signedhttp.utils import sanitize_url

logger = logging.getLogger(__name__)


class SigningGateway(ABC):
    """签名网关基类，两个方法都应是无副作用的纯函数（nonce 与时间戳除外）"""

    @abstractmethod
    def sign(
        self,
        credentials: Any,
        verb: str,
        uri: str,
        query: Mapping[str, Any] | None = None,
    ) -> dict[str, str]:
        """
        对请求签名

        参数:
            credentials: 签名凭据
            verb: 大写的 HTTP 方法
            uri: 占位符已渲染的 URI
            query: 参与签名的查询参数

        返回:
            签名参数字典（oauth_* 参数）
        """

    @abstractmethod
    def render_auth_header(self, signed_params: Mapping[str, str]) -> str:
        """把签名参数渲染为 Authorization 请求头的值"""


class OAuth1SigningGateway(SigningGateway):
    """
    基于 oauthlib 的 OAuth1 签名网关

    参数:
        signature_method: 签名方法，默认 HMAC-SHA1
        realm: Authorization 请求头中的 realm，可选
    """

    signature_method: str = SIGNATURE_HMAC

    def __init__(self, signature_method: str | None = None, realm: str | None = None):
        self.signature_method = signature_method or self.signature_method
        self.realm = realm

    def _create_client(self, credentials: Any) -> Client:
        credentials = coerce_credentials(credentials)
        return Client(
            credentials.consumer_key,
            client_secret=credentials.consumer_secret,
            resource_owner_key=credentials.token,
            resource_owner_secret=credentials.token_secret,
            signature_method=self.signature_method,
        )

    def sign(
        self,
        credentials: Any,
        verb: str,
        uri: str,
        query: Mapping[str, Any] | None = None,
    ) -> dict[str, str]:
        client = self._create_client(credentials)

        # 查询参数拼入 URI，使其进入签名基串
        signing_uri = uri
        if query:
            encoded_query = urlencode([(key, flatten_value(value)) for key, value in query.items()])
            signing_uri = f"{uri}{'&' if '?' in uri else '?'}{encoded_query}"

        request = OAuthRequest(signing_uri, http_method=verb)
        request.oauth_params = client.get_oauth_params(request)
        request.oauth_params.append(("oauth_signature", client.get_oauth_signature(request)))

        logger.debug(f"Signed {verb} {sanitize_url(signing_uri)} with {self.signature_method}")
        return dict(request.oauth_params)

    def render_auth_header(self, signed_params: Mapping[str, str]) -> str:
        headers = prepare_headers(list(signed_params.items()), realm=self.realm)
        return headers[AUTHORIZATION_HEADER]


def coerce_credentials(credentials: Any) -> OAuthCredentials:
    """
    把凭据统一为 OAuthCredentials

    支持 OAuthCredentials 实例，或包含 consumer_key、consumer_secret、token、token_secret 的字典
    （键名可使用连字符写法）

    异常:
        APIClientValidationError: 凭据格式无效时抛出
    """
    if isinstance(credentials, OAuthCredentials):
        return credentials
    if isinstance(credentials, Mapping):
        values = {fix_key(key): value for key, value in credentials.items()}
        try:
            return OAuthCredentials(**values)
        except TypeError as e:
            raise APIClientValidationError(f"Invalid OAuth credentials: {e}") from e
    raise APIClientValidationError(f"Unsupported credentials type: {type(credentials).__name__}")
