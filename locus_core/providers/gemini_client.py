"""Gemini Provider 适配器。

使用非流式的 generateContent 端点：
- URL: {base_url}/models/{model}:generateContent?key=<api_key>
- 认证: API Key 作为 query 参数，不使用 Bearer 头。

已知限制：多轮对话不会按 Gemini 原生的 contents 结构逐条发送，而是
把 system prompt 与每一轮拍平成一段文本（"ROLE: content"，空行分隔，
末尾追加 "ASSISTANT:" 提示），作为唯一的 part 发送。这样实现简单，
代价是模型看到的角色边界只是文本约定。

由于端点本身不分块，"流式"体验退化为响应完成后一次性产出整段回答。
"""

from typing import Any, Dict, Optional, Sequence

from locus_core.domain.exceptions import ConfigurationError
from locus_core.domain.models import ConversationTurn, QueryRequest, WireRequest
from locus_core.providers.decoder import SingleDocumentDecoder
from locus_core.providers.registry import GEMINI_CONFIG, ProviderConfig

ASSISTANT_CUE = "ASSISTANT:"


def flatten_conversation(system_prompt: str, turns: Sequence[ConversationTurn]) -> str:
    """把 system prompt 与多轮对话拍平成一段文本。"""

    blocks = [system_prompt.strip()] if system_prompt and system_prompt.strip() else []
    blocks.extend(f"{turn.role.upper()}: {turn.content}" for turn in turns)
    blocks.append(ASSISTANT_CUE)
    return "\n\n".join(blocks)


class GeminiClient:
    """Gemini generateContent 适配器。"""

    name = "gemini"
    streaming = False
    def __init__(self, settings=None, config: Optional[ProviderConfig] = None):
        self._settings = settings
        self.config = config or GEMINI_CONFIG
        self.error_label = self.config.error_label

    def build_request(self, req: QueryRequest) -> WireRequest:
        if not req.credential:
            raise ConfigurationError(
                code="MISSING_API_KEY",
                message="API Key is missing. Please configure it in Settings.",
                provider=self.name,
            )
        base = getattr(self._settings, "gemini_base_url", None) or self.config.base_url
        model = req.model or getattr(self._settings, "gemini_model_name", None) or self.config.default_model
        return WireRequest(
            url=f"{base.rstrip('/')}/models/{model}:generateContent",
            headers={"Content-Type": "application/json"},
            body=self._build_payload(req),
            params={"key": req.credential},
        )

    def new_decoder(self) -> SingleDocumentDecoder:
        return SingleDocumentDecoder()

    @staticmethod
    def _build_payload(req: QueryRequest) -> Dict[str, Any]:
        text = flatten_conversation(req.system_prompt, req.conversation)
        return {"contents": [{"parts": [{"text": text}]}]}
