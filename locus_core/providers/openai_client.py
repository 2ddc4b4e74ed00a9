"""OpenAI 兼容 Provider 适配器。

本模块负责：

1. 接收统一的 QueryRequest。
2. 将其转换为 chat/completions 的 HTTP 请求（stream=true）：
   - URL: {base_url}/chat/completions
   - 认证: Authorization: Bearer <api_key>
3. 提供 SSE 解码器，把响应流还原为文本片段。

自定义端点（CustomEndpointClient）与官方 OpenAI 使用同一套线上格式，
区别仅在于 base URL 和模型名必须由用户配置，API Key 可选。
"""

from typing import Any, Dict, Optional

from locus_core.domain.exceptions import ConfigurationError
from locus_core.domain.models import QueryRequest, WireRequest, turns_to_messages
from locus_core.providers.decoder import SseFrameDecoder
from locus_core.providers.registry import CUSTOM_CONFIG, OPENAI_CONFIG, ProviderConfig


class OpenAICompatibleClient:
    """OpenAI 官方 API 适配器。"""

    name = "openai"
    streaming = True
    config: ProviderConfig = OPENAI_CONFIG

    def __init__(self, settings=None, config: Optional[ProviderConfig] = None):
        # Settings 里包含 openai_base_url 等默认值
        self._settings = settings
        self.config = config or self.config
        self.error_label = self.config.error_label

    def build_request(self, req: QueryRequest) -> WireRequest:
        """将 QueryRequest 转成 chat/completions 请求。"""

        base = self._resolve_base_url(req)
        model = self._resolve_model(req)
        credential = self._resolve_credential(req)

        headers = {"Content-Type": "application/json"}
        if credential:
            headers["Authorization"] = f"Bearer {credential}"
        return WireRequest(
            url=f"{base.rstrip('/')}/chat/completions",
            headers=headers,
            body=self._build_payload(req, model),
        )

    def new_decoder(self) -> SseFrameDecoder:
        return SseFrameDecoder()

    # ---- 辅助方法 ----

    def _resolve_base_url(self, req: QueryRequest) -> str:
        return req.endpoint or getattr(self._settings, "openai_base_url", None) or self.config.base_url

    def _resolve_model(self, req: QueryRequest) -> str:
        return req.model or getattr(self._settings, "openai_model_name", None) or self.config.default_model

    def _resolve_credential(self, req: QueryRequest) -> str:
        if not req.credential:
            # 配置缺失走 ConfigurationError，方便上层统一处理
            raise ConfigurationError(
                code="MISSING_API_KEY",
                message="API Key is missing. Please configure it in Settings.",
                provider=self.name,
            )
        return req.credential

    @staticmethod
    def _build_payload(req: QueryRequest, model: str) -> Dict[str, Any]:
        messages = [{"role": "system", "content": req.system_prompt}]
        messages.extend(turns_to_messages(req.conversation))
        return {
            "model": model,
            "messages": messages,
            "stream": True,
        }


class CustomEndpointClient(OpenAICompatibleClient):
    """用户自建 / 第三方 OpenAI 兼容端点。"""

    name = "custom"
    config: ProviderConfig = CUSTOM_CONFIG

    def _resolve_base_url(self, req: QueryRequest) -> str:
        if not req.endpoint:
            raise ConfigurationError(
                code="MISSING_BASE_URL",
                message="Custom endpoint requires a base URL. Please configure it in Settings.",
                provider=self.name,
            )
        return req.endpoint

    def _resolve_model(self, req: QueryRequest) -> str:
        if not req.model:
            raise ConfigurationError(
                code="MISSING_MODEL",
                message="Custom endpoint requires a model name. Please configure it in Settings.",
                provider=self.name,
            )
        return req.model

    def _resolve_credential(self, req: QueryRequest) -> str:
        # 本地/自建端点允许不带 API Key
        return req.credential or ""
