"""LLM Provider 集成层。

该包下的模块负责：
- 定义适配器协议 (base) 与流式解码器 (decoder)。
- 维护 Provider 的默认端点与模型 (registry)。
- 提供各厂商的具体实现 (openai_client、gemini_client、anthropic_client)。
"""

from typing import Callable, Dict

from locus_core.domain.models import ProviderKind
from locus_core.providers.anthropic_client import AnthropicClient
from locus_core.providers.base import ProviderAdapter
from locus_core.providers.gemini_client import GeminiClient
from locus_core.providers.openai_client import CustomEndpointClient, OpenAICompatibleClient
from locus_core.providers.registry import PROVIDER_REGISTRY, get_provider_config

ADAPTER_FACTORIES: Dict[ProviderKind, Callable[..., ProviderAdapter]] = {
    ProviderKind.OPENAI: OpenAICompatibleClient,
    ProviderKind.CUSTOM: CustomEndpointClient,
    ProviderKind.GEMINI: GeminiClient,
    ProviderKind.ANTHROPIC: AnthropicClient,
}


def create_adapter(kind, settings=None) -> ProviderAdapter:
    """根据 ProviderKind 创建适配器实例，静态配置取自 registry。"""

    config = get_provider_config(kind)
    return ADAPTER_FACTORIES[config.kind](settings, config=config)


def create_adapters(settings=None) -> Dict[ProviderKind, ProviderAdapter]:
    """为每个 ProviderKind 各创建一个适配器（适配器无状态，可复用）。"""

    return {kind: create_adapter(kind, settings) for kind in PROVIDER_REGISTRY}


__all__ = ["ADAPTER_FACTORIES", "ProviderAdapter", "create_adapter", "create_adapters"]
