"""
测试 signedhttp.signing 模块

测试签名网关:
- OAuth1SigningGateway 生成的签名参数和 Authorization 请求头
- 签名结果可用 oauthlib 独立复算
- 凭据格式转换
"""

import pytest
from oauthlib.oauth1.rfc5849 import signature

from signedhttp.exceptions import APIClientValidationError
from signedhttp.models import OAuthCredentials
from signedhttp.signing import OAuth1SigningGateway, SigningGateway, coerce_credentials


def recompute_signature(verb, uri, signed, query, consumer_secret, token_secret):
    """按 RFC 5849 独立计算 HMAC-SHA1 签名"""
    params = [(key, value) for key, value in signed.items() if key != "oauth_signature"]
    params.extend((key, str(value)) for key, value in (query or {}).items())
    base_string = signature.signature_base_string(
        verb,
        signature.base_string_uri(uri),
        signature.normalize_parameters(params),
    )
    return signature.sign_hmac_sha1(base_string, consumer_secret, token_secret or "")


class TestOAuth1SigningGateway:
    """测试基于 oauthlib 的签名网关"""

    @pytest.mark.unit
    def test_signed_params_contain_oauth_fields(self, credentials):
        """UT-SIGN-001: 签名结果包含完整的 oauth_* 参数"""
        gateway = OAuth1SigningGateway()

        signed = gateway.sign(credentials, "GET", "https://api.example.com/2.0/accounts")

        assert signed["oauth_consumer_key"] == "consumer-key"
        assert signed["oauth_token"] == "token"
        assert signed["oauth_signature_method"] == "HMAC-SHA1"
        assert signed["oauth_version"] == "1.0"
        assert signed["oauth_nonce"]
        assert signed["oauth_timestamp"].isdigit()
        assert signed["oauth_signature"]

    @pytest.mark.unit
    def test_signature_matches_independent_computation(self, credentials):
        """UT-SIGN-002: 查询参数参与签名，结果可独立复算"""
        gateway = OAuth1SigningGateway()
        uri = "https://api.example.com/2.0/accounts/42"
        query = {"screen_name": "a,b", "count": 5}

        signed = gateway.sign(credentials, "GET", uri, query)

        expected = recompute_signature("GET", uri, signed, query, "consumer-secret", "token-secret")
        assert signed["oauth_signature"] == expected

    @pytest.mark.unit
    def test_none_query_value_signed_as_empty(self, credentials):
        """UT-SIGN-012: 取值为 None 的查询参数按空字符串签名，与发送的查询串一致"""
        gateway = OAuth1SigningGateway()
        uri = "https://api.example.com/2.0/accounts"

        signed = gateway.sign(credentials, "GET", uri, {"cursor": None})

        expected = recompute_signature("GET", uri, signed, {"cursor": ""}, "consumer-secret", "token-secret")
        assert signed["oauth_signature"] == expected

    @pytest.mark.unit
    def test_two_legged_signing(self):
        """UT-SIGN-003: 没有 token 时按双腿方式签名"""
        gateway = OAuth1SigningGateway()
        creds = OAuthCredentials("consumer-key", "consumer-secret")
        uri = "https://api.example.com/2.0/accounts"

        signed = gateway.sign(creds, "POST", uri, {"name": "x"})

        assert "oauth_token" not in signed
        expected = recompute_signature("POST", uri, signed, {"name": "x"}, "consumer-secret", None)
        assert signed["oauth_signature"] == expected

    @pytest.mark.unit
    def test_nonce_differs_between_calls(self, credentials):
        """UT-SIGN-004: 每次签名生成新的 nonce"""
        gateway = OAuth1SigningGateway()
        uri = "https://api.example.com/2.0/accounts"

        first = gateway.sign(credentials, "GET", uri)
        second = gateway.sign(credentials, "GET", uri)

        assert first["oauth_nonce"] != second["oauth_nonce"]

    @pytest.mark.unit
    def test_render_auth_header(self, credentials):
        """UT-SIGN-005: Authorization 请求头以 OAuth 开头并包含签名"""
        gateway = OAuth1SigningGateway()
        signed = gateway.sign(credentials, "GET", "https://api.example.com/2.0/accounts")

        header = gateway.render_auth_header(signed)

        assert header.startswith("OAuth ")
        assert 'oauth_consumer_key="consumer-key"' in header
        assert "oauth_signature=" in header

    @pytest.mark.unit
    def test_render_auth_header_with_realm(self, credentials):
        """UT-SIGN-006: 配置 realm 时写入请求头"""
        gateway = OAuth1SigningGateway(realm="example")
        signed = gateway.sign(credentials, "GET", "https://api.example.com/2.0/accounts")

        assert gateway.render_auth_header(signed).startswith('OAuth realm="example"')

    @pytest.mark.unit
    def test_mapping_credentials_accepted(self):
        """UT-SIGN-007: 字典形式的凭据同样可以签名"""
        gateway = OAuth1SigningGateway()

        signed = gateway.sign(
            {"consumer-key": "ck", "consumer-secret": "cs"},
            "GET",
            "https://api.example.com/2.0/accounts",
        )

        assert signed["oauth_consumer_key"] == "ck"

    @pytest.mark.unit
    def test_is_signing_gateway(self):
        """UT-SIGN-008: 默认网关实现 SigningGateway 接口"""
        assert isinstance(OAuth1SigningGateway(), SigningGateway)


class TestCoerceCredentials:
    """测试凭据转换"""

    @pytest.mark.unit
    def test_instance_passes_through(self, credentials):
        """UT-SIGN-009: OAuthCredentials 原样返回"""
        assert coerce_credentials(credentials) is credentials

    @pytest.mark.unit
    def test_mapping_with_unknown_key(self):
        """UT-SIGN-010: 字典包含未知字段时抛出验证异常"""
        with pytest.raises(APIClientValidationError):
            coerce_credentials({"consumer_key": "ck", "consumer_secret": "cs", "extra": 1})

    @pytest.mark.unit
    def test_unsupported_type(self):
        """UT-SIGN-011: 不支持的类型抛出验证异常"""
        with pytest.raises(APIClientValidationError, match="str"):
            coerce_credentials("ck:cs")
