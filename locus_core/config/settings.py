"""配置管理模块。

支持从 .env、config.yaml 以及环境变量加载配置（环境变量前缀 LOCUS_）。
不再维护全局单例：调用方通过 load_settings() 获取实例，并显式传给
QueryEngine / SessionController。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from locus_core.domain.models import ConversationTurn, ProviderKind, QueryRequest


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("LOCUS_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class LocusSettings(BaseSettings):
    """阅读器 AI 配置（使用 Pydantic）。"""

    # ---- Provider 相关配置 ----
    provider: ProviderKind = Field(
        default=ProviderKind.GEMINI,
        description="当前使用的 Provider：openai / gemini / anthropic / custom",
    )
    api_key: Optional[str] = Field(default=None, description="API 密钥（bearer 或 Gemini key）")

    # OpenAI 兼容
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI API 基础URL",
    )
    openai_model_name: str = Field(default="gpt-4o", description="OpenAI 模型名")

    # 自定义端点（OpenAI 兼容协议）
    custom_base_url: Optional[str] = Field(default=None, description="自定义端点基础URL")
    custom_model_name: Optional[str] = Field(default=None, description="自定义端点模型名")

    # Gemini
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini API 基础URL",
    )
    gemini_model_name: str = Field(default="gemini-1.5-flash", description="Gemini 模型名")

    http_timeout: float = Field(default=60.0, ge=1.0, description="HTTP 超时时间（秒）")
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_prefix="LOCUS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("provider", mode="before")
    @classmethod
    def parse_provider(cls, v: Any) -> ProviderKind:
        return ProviderKind.parse(v)

    @field_validator("openai_base_url", "gemini_base_url", "custom_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().rstrip("/")
        return v or None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )

    def resolve_endpoint(self) -> Optional[str]:
        """返回当前 provider 需要的 base URL 覆盖值（仅自定义端点）。"""

        if self.provider == ProviderKind.CUSTOM:
            return self.custom_base_url
        return None

    def resolve_model(self) -> Optional[str]:
        """返回当前 provider 的模型名。"""

        models = {
            ProviderKind.OPENAI: self.openai_model_name,
            ProviderKind.GEMINI: self.gemini_model_name,
            ProviderKind.CUSTOM: self.custom_model_name,
        }
        return models.get(self.provider)

    def to_query_request(
        self,
        system_prompt: str,
        conversation: Sequence[ConversationTurn],
    ) -> QueryRequest:
        """在发请求时把配置解析为 QueryRequest。"""

        return QueryRequest(
            provider=self.provider,
            system_prompt=system_prompt,
            conversation=list(conversation),
            credential=self.api_key,
            endpoint=self.resolve_endpoint(),
            model=self.resolve_model(),
        )


def load_settings(**overrides: Any) -> LocusSettings:
    """创建一份新的配置实例，overrides 优先级最高。"""

    return LocusSettings(**overrides)
