"""统一业务异常模型。

所有跨模块抛出的业务级错误都继承自 BusinessError，
QueryEngine 在边界处统一捕获并转换为用户可读的文本片段。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "MISSING_API_KEY"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 provider 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ConfigurationError(BusinessError):
    """配置缺失（API Key、自定义端点地址或模型名），不会发起任何网络请求。"""


class TransportError(BusinessError):
    """网络层错误，例如 DNS 失败、连接被拒绝、读超时等。"""


class ProviderHttpError(BusinessError):
    """Provider 返回非 2xx 状态码时抛出，body 为完整的错误响应体。"""

    def __init__(self, status: int, body: str, label: str = "API"):
        self.status = status
        self.body = body
        super().__init__(
            code="API_ERROR",
            message=f"{label} Error ({status}): {body}",
            http_status=status,
        )


class UnimplementedProviderError(BusinessError):
    """Provider 已登记但尚未接入，只返回一条提示信息而不是错误。"""


class ValidationError(BusinessError):
    """请求参数校验失败（调用方的编程错误）。"""
