"""流式响应解码器（FrameDecoder）。

把传输层交付的原始文本块转换为文本片段（fragment）：

- SseFrameDecoder: OpenAI 兼容的 SSE 流，按行缓冲，支持跨块的半行。
- SingleDocumentDecoder: Gemini generateContent 的一次性 JSON 响应，
  在 finish() 时整体解析，产出唯一的一个片段。

解码器只做同步的纯转换，不做任何 IO；驱动逻辑见 drain_fragments。
"""

import json
from typing import Any, AsyncIterable, AsyncIterator, List, Protocol

from locus_core.infrastructure.logging.logger import logger

SSE_DATA_PREFIX = "data: "
SSE_DONE_SENTINEL = "[DONE]"


class FrameDecoder(Protocol):
    """解码器协议。

    - feed(chunk): 消费一个原始块，返回目前已完整的片段。
    - finish(): 传输结束时调用，丢弃残留的不完整数据。
    - done: 是否已收到结束标记，调用方据此停止读取。
    """

    done: bool

    def feed(self, chunk: str) -> List[str]:
        ...

    def finish(self) -> List[str]:
        ...


class SseFrameDecoder:
    """OpenAI 兼容 chat/completions 流的解码器。"""

    def __init__(self) -> None:
        self._buffer = ""
        self.done = False

    def feed(self, chunk: str) -> List[str]:
        if self.done or not chunk:
            return []
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split("\n")
        fragments: List[str] = []
        for line in lines:
            line = line.rstrip("\r")
            if not line.startswith(SSE_DATA_PREFIX):
                continue
            data_str = line[len(SSE_DATA_PREFIX):]
            if data_str.strip() == SSE_DONE_SENTINEL:
                self.done = True
                self._buffer = ""
                break
            content = self._parse_delta(data_str)
            if content:
                fragments.append(content)
        return fragments

    def finish(self) -> List[str]:
        # 末尾不完整的行直接丢弃
        self._buffer = ""
        return []

    @staticmethod
    def _parse_delta(data_str: str) -> str:
        try:
            payload = json.loads(data_str)
            content = payload["choices"][0]["delta"].get("content")
        except (ValueError, KeyError, IndexError, TypeError, AttributeError):
            logger.debug("Dropped malformed stream frame", extra={"extra": {"size": len(data_str)}})
            return ""
        return content if isinstance(content, str) else ""


class SingleDocumentDecoder:
    """Gemini 非流式响应：累积完整响应体，结束时一次性抽取文本。"""

    def __init__(self) -> None:
        self._parts: List[str] = []
        self.done = False

    def feed(self, chunk: str) -> List[str]:
        if chunk:
            self._parts.append(chunk)
        return []

    def finish(self) -> List[str]:
        body = "".join(self._parts)
        self._parts = []
        self.done = True
        text = self._extract_text(body)
        return [text] if text else []

    @staticmethod
    def _extract_text(body: str) -> str:
        try:
            data: Any = json.loads(body)
            parts = data["candidates"][0]["content"]["parts"]
            return "".join(p.get("text") or "" for p in parts if isinstance(p, dict))
        except (ValueError, KeyError, IndexError, TypeError):
            logger.debug("Dropped malformed response document", extra={"extra": {"size": len(body)}})
            return ""


async def drain_fragments(decoder: FrameDecoder, chunks: AsyncIterable[str]) -> AsyncIterator[str]:
    """驱动解码器：逐块喂入，收到结束标记后立即停止读取，最后 flush。"""

    async for chunk in chunks:
        for fragment in decoder.feed(chunk):
            yield fragment
        if decoder.done:
            break
    for fragment in decoder.finish():
        yield fragment
