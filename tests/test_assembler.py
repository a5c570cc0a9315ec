"""
测试 signedhttp.assembler 模块

测试请求组装:
- 参数合并与 URI 渲染
- 签名网关调用与 Authorization 请求头
- 查询串与请求体的放置规则
- 参数包只包含传输字段
"""

import pytest

from signedhttp.assembler import assemble
from signedhttp.exceptions import APIClientTemplateError, APIClientValidationError
from signedhttp.handlers import default_handlers
from signedhttp.models import BodyKind, BodyPart, CallOptions

BASE_URL = "https://api.example.com/2.0"


class TestAssembleUri:
    """测试 URI 与参数合并"""

    @pytest.mark.unit
    def test_placeholder_rendered(self, fake_gateway, credentials):
        """UT-ASM-001: 占位符由规范参数渲染"""
        options = CallOptions(params={"id": "42"}, credentials=credentials)

        processed = assemble("get", f"{BASE_URL}/accounts/{{id}}", options, fake_gateway)

        assert processed.verb == "GET"
        assert processed.uri == f"{BASE_URL}/accounts/42"

    @pytest.mark.unit
    def test_params_win_over_query(self, fake_gateway):
        """UT-ASM-002: 参数名冲突时规范参数优先"""
        options = CallOptions(params={"limit": 10}, query={"limit": 1, "offset": 5})

        processed = assemble("GET", f"{BASE_URL}/accounts", options, fake_gateway)

        assert processed.args["query"] == {"limit": 10, "offset": 5}

    @pytest.mark.unit
    def test_placeholder_params_stay_in_query(self, fake_gateway):
        """UT-ASM-003: 参与 URI 渲染的参数仍然保留在查询参数中"""
        options = CallOptions(params={"id": "42", "screen-name": ["a", "b"]})

        processed = assemble("GET", f"{BASE_URL}/accounts/{{id}}", options, fake_gateway)

        assert processed.args["query"] == {"id": "42", "screen_name": "a,b"}

    @pytest.mark.unit
    def test_unmatched_placeholder(self, fake_gateway, credentials):
        """UT-ASM-004: 未匹配占位符时抛出异常且不签名"""
        options = CallOptions(params={}, credentials=credentials)

        with pytest.raises(APIClientTemplateError):
            assemble("GET", f"{BASE_URL}/accounts/{{id}}", options, fake_gateway)

        assert fake_gateway.calls == []

    @pytest.mark.unit
    def test_unsupported_verb_rejected(self, fake_gateway, credentials):
        """UT-ASM-018: 不支持的 HTTP 方法抛出验证异常且不签名"""
        options = CallOptions(params={"id": "1"}, credentials=credentials)

        with pytest.raises(APIClientValidationError, match="FETCH"):
            assemble("fetch", f"{BASE_URL}/accounts/{{id}}", options, fake_gateway)

        assert fake_gateway.calls == []

    @pytest.mark.unit
    @pytest.mark.parametrize("verb", ["get", "Post", "PUT", "delete", "patch", "head", "options"])
    def test_supported_verbs_normalized(self, fake_gateway, verb):
        """UT-ASM-019: 支持的 HTTP 方法不区分大小写，统一转为大写"""
        processed = assemble(verb, f"{BASE_URL}/accounts", CallOptions(), fake_gateway)

        assert processed.verb == verb.upper()


class TestAssembleSigning:
    """测试签名"""

    @pytest.mark.unit
    def test_gateway_receives_merged_query(self, fake_gateway, credentials):
        """UT-ASM-005: 签名网关收到渲染后的 URI 和合并后的查询参数"""
        options = CallOptions(params={"id": "7"}, query={"q": "x"}, credentials=credentials)

        processed = assemble("GET", f"{BASE_URL}/accounts/{{id}}", options, fake_gateway)

        assert fake_gateway.calls == [
            {
                "credentials": credentials,
                "verb": "GET",
                "uri": f"{BASE_URL}/accounts/7",
                "query": {"q": "x", "id": "7"},
            }
        ]
        assert processed.args["headers"]["Authorization"] == (
            'OAuth oauth_consumer_key="consumer-key", oauth_signature="fixed-signature"'
        )

    @pytest.mark.unit
    def test_post_signs_form_params(self, fake_gateway, credentials):
        """UT-ASM-006: 非 GET 请求的表单参数同样参与签名"""
        options = CallOptions(params={"name": "x"}, credentials=credentials)

        assemble("POST", f"{BASE_URL}/accounts", options, fake_gateway)

        assert fake_gateway.calls[0]["verb"] == "POST"
        assert fake_gateway.calls[0]["query"] == {"name": "x"}

    @pytest.mark.unit
    def test_no_credentials_no_signature(self, fake_gateway):
        """UT-ASM-007: 没有凭据时不签名，也不写 Authorization"""
        processed = assemble("GET", f"{BASE_URL}/accounts", CallOptions(), fake_gateway)

        assert fake_gateway.calls == []
        assert "Authorization" not in processed.args["headers"]

    @pytest.mark.unit
    def test_caller_headers_preserved(self, fake_gateway, credentials):
        """UT-ASM-008: 调用方的请求头保留，Authorization 由签名覆盖"""
        options = CallOptions(
            headers={"Accept": "application/json", "authorization": "stale"},
            credentials=credentials,
        )

        processed = assemble("GET", f"{BASE_URL}/accounts", options, fake_gateway)

        headers = processed.args["headers"]
        assert headers["Accept"] == "application/json"
        assert headers["Authorization"].startswith("OAuth ")


class TestAssemblePlacement:
    """测试查询串与请求体的放置规则"""

    @pytest.mark.unit
    def test_get_keeps_params_in_query(self, fake_gateway):
        """UT-ASM-009: GET 请求参数放在查询串，没有请求体"""
        processed = assemble("GET", f"{BASE_URL}/accounts", CallOptions(params={"limit": 1}), fake_gateway)

        assert processed.args["query"] == {"limit": 1}
        assert "body" not in processed.args
        assert "Content-Type" not in processed.args["headers"]

    @pytest.mark.unit
    def test_post_without_body_uses_form(self, fake_gateway):
        """UT-ASM-010: 非 GET 且没有请求体时，参数作为表单请求体，查询串为空"""
        processed = assemble("POST", f"{BASE_URL}/accounts", CallOptions(params={"name": "x"}), fake_gateway)

        assert "query" not in processed.args
        assert processed.args["body"].kind is BodyKind.FORM
        assert processed.args["body"].value == {"name": "x"}
        assert processed.args["headers"]["Content-Type"] == "application/x-www-form-urlencoded"

    @pytest.mark.unit
    def test_put_with_body_keeps_query(self, fake_gateway):
        """UT-ASM-011: 非 GET 且有请求体时，参数放在查询串，请求体为显式请求体"""
        options = CallOptions(params={"id": "1"}, body='{"a": 1}', headers={"Content-Type": "application/json"})

        processed = assemble("PUT", f"{BASE_URL}/accounts/{{id}}", options, fake_gateway)

        assert processed.args["query"] == {"id": "1"}
        assert processed.args["body"].kind is BodyKind.RAW
        assert processed.args["body"].value == '{"a": 1}'
        assert processed.args["headers"]["Content-Type"] == "application/json"

    @pytest.mark.unit
    def test_multipart_body_inferred(self, fake_gateway):
        """UT-ASM-012: multipart 内容类型的请求体推断为 MULTIPART"""
        part = BodyPart("file", b"data", filename="a.bin")
        options = CallOptions(body=[part], headers={"Content-Type": "multipart/form-data"})

        processed = assemble("POST", f"{BASE_URL}/files", options, fake_gateway)

        assert processed.args["body"].kind is BodyKind.MULTIPART
        assert processed.args["body"].value == (part,)

    @pytest.mark.unit
    def test_get_with_explicit_body(self, fake_gateway):
        """UT-ASM-013: GET 请求的显式请求体原样透传"""
        processed = assemble("GET", f"{BASE_URL}/search", CallOptions(body="q=1"), fake_gateway)

        assert processed.args["body"].kind is BodyKind.RAW

    @pytest.mark.unit
    def test_get_zero_id(self, fake_gateway):
        """UT-ASM-016: GET {id: "0"} 没有请求体时查询参数包含 id=0"""
        processed = assemble("GET", f"{BASE_URL}/accounts", CallOptions(params={"id": "0"}), fake_gateway)

        assert processed.args["query"] == {"id": "0"}
        assert "body" not in processed.args

    @pytest.mark.unit
    def test_post_with_string_body(self, fake_gateway):
        """UT-ASM-017: POST 显式字符串请求体保持不变，参数放在查询串"""
        options = CallOptions(params={"name": "x"}, body="raw payload")

        processed = assemble("POST", f"{BASE_URL}/notes", options, fake_gateway)

        assert processed.args["query"] == {"name": "x"}
        assert processed.args["body"].value == "raw payload"
        assert "Content-Type" not in processed.args["headers"]


class TestAssembleArgs:
    """测试参数包内容"""

    @pytest.mark.unit
    def test_control_fields_excluded(self, fake_gateway, credentials):
        """UT-ASM-014: 客户端、处理器、凭据、执行模式不进入参数包"""
        options = CallOptions(
            params={"id": "1"},
            credentials=credentials,
            handlers=default_handlers(),
            client=object(),
            is_async=True,
            timeout=5,
            proxy="http://proxy:8080",
            cookies=[{"domain": "api.example.com", "name": "s", "value": "v"}],
        )

        processed = assemble("GET", f"{BASE_URL}/accounts/{{id}}", options, fake_gateway)

        assert set(processed.args) == {"headers", "query", "cookies", "proxy", "timeout"}
        assert processed.args["timeout"] == 5

    @pytest.mark.unit
    def test_absent_fields_dropped(self, fake_gateway):
        """UT-ASM-015: 未设置的传输字段不出现在参数包中"""
        processed = assemble("GET", f"{BASE_URL}/accounts", CallOptions(), fake_gateway)

        assert set(processed.args) == {"headers"}
