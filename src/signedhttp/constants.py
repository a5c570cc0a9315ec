"""
签名 HTTP 客户端常量配置模块

定义请求流水线使用的常量、默认配置等
"""

# HTTP 方法常量
HTTP_METHOD_GET = "GET"
HTTP_METHOD_POST = "POST"
HTTP_METHOD_PUT = "PUT"
HTTP_METHOD_DELETE = "DELETE"
HTTP_METHOD_PATCH = "PATCH"
HTTP_METHOD_HEAD = "HEAD"
HTTP_METHOD_OPTIONS = "OPTIONS"

HTTP_METHODS = {
    HTTP_METHOD_GET,
    HTTP_METHOD_POST,
    HTTP_METHOD_PUT,
    HTTP_METHOD_DELETE,
    HTTP_METHOD_PATCH,
    HTTP_METHOD_HEAD,
    HTTP_METHOD_OPTIONS,
}

# 默认配置
DEFAULT_TIMEOUT = 30  # 默认超时时间（秒）
DEFAULT_MAX_WORKERS = 10  # 异步回调线程池的最大工作线程数

# 请求头名称
AUTHORIZATION_HEADER = "Authorization"
CONTENT_TYPE_HEADER = "Content-Type"
COOKIE_HEADER = "Cookie"

# 内容类型
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
MULTIPART_CONTENT_TYPE = "multipart/form-data"

# Cookie 默认值
DEFAULT_COOKIE_PATH = "/"
DEFAULT_COOKIE_MAX_AGE = 30  # 秒
DEFAULT_COOKIE_SECURE = False

# 参数名分隔符：调用方习惯使用连字符，线上协议使用下划线
PARAM_SEPARATOR = "-"
WIRE_SEPARATOR = "_"
COLLECTION_JOINER = ","

# 请求 ID 前缀，用于日志追踪
REQUEST_ID_PREFIX = "REQ"
