"""Anthropic Provider 占位实现。

Provider 已在设置中可选，但尚未接入：build_request 直接抛出
UnimplementedProviderError，QueryEngine 将其渲染为一条提示信息，
不会发起任何网络请求，也不会被当成一次空的成功回答。
"""

from typing import Optional

from locus_core.domain.exceptions import UnimplementedProviderError
from locus_core.domain.models import QueryRequest, WireRequest
from locus_core.providers.decoder import SseFrameDecoder
from locus_core.providers.registry import ANTHROPIC_CONFIG, ProviderConfig

COMING_SOON_MESSAGE = "Anthropic integration is coming soon."


class AnthropicClient:
    name = "anthropic"
    streaming = True
    def __init__(self, settings=None, config: Optional[ProviderConfig] = None):
        self._settings = settings
        self.config = config or ANTHROPIC_CONFIG
        self.error_label = self.config.error_label

    def build_request(self, req: QueryRequest) -> WireRequest:
        raise UnimplementedProviderError(
            code="PROVIDER_UNAVAILABLE",
            message=COMING_SOON_MESSAGE,
            provider=self.name,
        )

    def new_decoder(self) -> SseFrameDecoder:
        return SseFrameDecoder()
