"""Provider 适配器协议。

上层 QueryEngine 不直接依赖具体厂商的 HTTP 协议，而是依赖此协议：

- 每个厂商实现一个适配器（如 OpenAICompatibleClient、GeminiClient）。
- build_request: 将 QueryRequest 转成具体的 WireRequest。
- new_decoder: 返回一个新的 FrameDecoder，用于从响应体中抽取文本片段。

这样可以在不改 QueryEngine 代码的前提下接入更多厂商。
"""

from typing import Protocol

from locus_core.domain.models import QueryRequest, WireRequest
from locus_core.providers.decoder import FrameDecoder


class ProviderAdapter(Protocol):
    """LLM Provider 适配器协议。

    - name: Provider 名称，用于日志。
    - streaming: 是否使用真正的分块流式传输（Gemini 为 False）。
    - error_label: 非 2xx 错误信息中的前缀。
    """

    name: str
    streaming: bool
    error_label: str

    def build_request(self, req: QueryRequest) -> WireRequest:
        ...

    def new_decoder(self) -> FrameDecoder:
        ...
