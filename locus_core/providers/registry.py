"""Provider 静态配置。

每个 ProviderKind 对应一份 ProviderConfig：默认端点、默认模型以及
错误信息里使用的标签。运行时的覆盖值（自定义 base URL、模型名）
来自 LocusSettings，这里只保存与用户配置无关的常量。"""

from dataclasses import dataclass
from typing import Mapping, Optional

from locus_core.domain.models import ProviderKind


@dataclass(frozen=True)
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    kind: ProviderKind
    base_url: Optional[str]
    default_model: Optional[str]
    error_label: str = "API"


OPENAI_CONFIG = ProviderConfig(
    kind=ProviderKind.OPENAI,
    base_url="https://api.openai.com/v1",
    default_model="gpt-4o",
)

# 自定义端点：base URL 与模型名都必须由用户配置
CUSTOM_CONFIG = ProviderConfig(
    kind=ProviderKind.CUSTOM,
    base_url=None,
    default_model=None,
)

GEMINI_CONFIG = ProviderConfig(
    kind=ProviderKind.GEMINI,
    base_url="https://generativelanguage.googleapis.com/v1beta",
    default_model="gemini-1.5-flash",
    error_label="Gemini API",
)

ANTHROPIC_CONFIG = ProviderConfig(
    kind=ProviderKind.ANTHROPIC,
    base_url=None,
    default_model=None,
    error_label="Anthropic API",
)


PROVIDER_REGISTRY: Mapping[ProviderKind, ProviderConfig] = {
    ProviderKind.OPENAI: OPENAI_CONFIG,
    ProviderKind.CUSTOM: CUSTOM_CONFIG,
    ProviderKind.GEMINI: GEMINI_CONFIG,
    ProviderKind.ANTHROPIC: ANTHROPIC_CONFIG,
}


def get_provider_config(kind) -> ProviderConfig:
    """根据 ProviderKind（或其字符串值）获取 ProviderConfig。"""

    try:
        return PROVIDER_REGISTRY[ProviderKind(kind)]
    except ValueError:
        raise KeyError(f"Unknown provider: {kind!r}") from None
