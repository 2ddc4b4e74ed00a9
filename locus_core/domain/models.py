"""统一的查询与会话数据模型。

本模块定义了 QueryEngine、各 Provider 适配器以及 SessionController
之间共享的标准数据结构：

- ProviderKind: 封闭的 Provider 枚举（openai / gemini / anthropic / custom）。
- ConversationTurn: 一轮对话（user / assistant）。
- QueryRequest: 与厂商无关的查询请求。
- WireRequest: 适配器生成的具体 HTTP 请求（url/headers/body/params）。

所有 Provider 适配器都只依赖这些模型，并负责在各自的 API JSON
与这些模型之间做转换。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Sequence

from locus_core.domain.exceptions import ValidationError


class ProviderKind(str, Enum):
    """Provider 类型，取值与持久化配置中的字符串一致。"""

    OPENAI = "openai"
    GEMINI = "gemini"
    ANTHROPIC = "anthropic"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: Optional[str], default: Optional["ProviderKind"] = None) -> "ProviderKind":
        """解析配置中的 provider 字符串，大小写不敏感；无法识别时回退到默认值。"""

        fallback = default or cls.GEMINI
        if isinstance(value, cls):
            return value
        if not value:
            return fallback
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return fallback


# 对话角色（system prompt 不进入会话，由适配器在发送时拼接）
Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class ConversationTurn:
    """一轮对话消息。"""

    role: Role
    content: str


@dataclass
class QueryRequest:
    """一次与厂商无关的查询请求。

    - credential: 可为 None（未配置）或空字符串，两者语义不同，但都视为"缺失"。
    - endpoint: 自定义 base URL，仅 openai / custom 使用。
    - conversation: 有序的对话轮次，发送前必须非空且最后一轮为 user。
    """

    provider: ProviderKind
    system_prompt: str
    conversation: List[ConversationTurn]
    credential: Optional[str] = None
    endpoint: Optional[str] = None
    model: Optional[str] = None

    @property
    def has_credential(self) -> bool:
        return bool(self.credential)

    def validate(self) -> None:
        if not self.conversation:
            raise ValidationError(code="EMPTY_CONVERSATION", message="Conversation must not be empty")
        if self.conversation[-1].role != "user":
            raise ValidationError(
                code="INVALID_LAST_TURN",
                message="The last conversation turn must come from the user",
            )


@dataclass
class WireRequest:
    """适配器产出的 HTTP 请求描述，由 StreamTransport 执行。"""

    url: str
    headers: Dict[str, str]
    body: Dict[str, Any]
    params: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Selection:
    """渲染引擎发出的选区事件。locator 为不透明的位置标识，核心层从不解析。"""

    text: str
    locator: Optional[str] = None


@dataclass
class SessionEvent:
    """SessionController 推送给 UI 的事件。

    kind:
        - "delta": 一个新的文本片段，delta_text 为增量内容。
        - "final": 本轮回答结束，turn 为已提交的 assistant 轮次。
        - "cleared": 会话被清空。
    """

    kind: Literal["delta", "final", "cleared"]
    generation: int
    delta_text: Optional[str] = None
    turn: Optional[ConversationTurn] = None


def turns_to_messages(turns: Sequence[ConversationTurn]) -> List[Dict[str, str]]:
    """把会话轮次转换成 chat/completions 风格的消息列表。"""

    return [{"role": t.role, "content": t.content} for t in turns]
