"""HTTP 传输层（StreamTransport）。

执行适配器生成的 WireRequest，并把响应体以原始文本块的形式交出：

- 流式模式：client.stream + aiter_text，按网络到达顺序产出文本块。
- 非流式模式（Gemini）：请求完成后产出一个等于整个响应体的文本块。

非 2xx 响应会先读完整个错误体再抛出 ProviderHttpError，绝不把错误体
当作正文解析；连接层错误与无法编码的请求头统一包装为 TransportError。
"""

from typing import AsyncIterator, Optional

import httpx

from locus_core.domain.exceptions import ProviderHttpError, TransportError
from locus_core.domain.models import WireRequest

NON_ASCII_HEADER_MESSAGE = "Request headers contain non-ASCII characters. Please check the API Key in Settings."


class StreamTransport:
    """基于 httpx.AsyncClient 的传输实现，每次调用使用独立的 client。"""

    def __init__(
        self,
        timeout: float = 60.0,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._timeout = timeout
        # 测试时可注入 httpx.MockTransport
        self._http_transport = http_transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout,
            trust_env=False,
            transport=self._http_transport,
        )

    async def open(
        self,
        wire: WireRequest,
        streaming: bool = True,
        error_label: str = "API",
    ) -> AsyncIterator[str]:
        """执行请求并逐块产出响应文本。"""

        try:
            async with self._client() as client:
                if streaming:
                    async with client.stream(
                        "POST",
                        wire.url,
                        json=wire.body,
                        headers=wire.headers,
                        params=wire.params or None,
                    ) as resp:
                        if not resp.is_success:
                            await resp.aread()
                            raise ProviderHttpError(resp.status_code, resp.text, label=error_label)
                        async for chunk in resp.aiter_text():
                            if chunk:
                                yield chunk
                else:
                    resp = await client.post(
                        wire.url,
                        json=wire.body,
                        headers=wire.headers,
                        params=wire.params or None,
                    )
                    if not resp.is_success:
                        raise ProviderHttpError(resp.status_code, resp.text, label=error_label)
                    yield resp.text
        except httpx.InvalidURL as e:
            raise TransportError(code="INVALID_URL", message=str(e))
        except UnicodeEncodeError:
            # httpx 只接受 ASCII 头部，多见于粘贴 API Key 时带入的弯引号
            raise TransportError(code="INVALID_HEADER", message=NON_ASCII_HEADER_MESSAGE) from None
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接被拒绝、超时、连接中断等
            raise TransportError(code="NETWORK_ERROR", message=str(e) or type(e).__name__)
