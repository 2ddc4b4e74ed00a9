"""查询引擎核心模块。

QueryEngine 是与厂商无关的唯一入口：校验请求、按 ProviderKind 选择适配器、
构造线上请求、驱动传输层与解码器，并把结果统一成一个惰性的文本片段序列。

所有失败都被收敛在产出的序列内部：配置错误产出一条合成回复，
传输/HTTP 错误在已产出的部分内容之后追加一条错误片段，然后结束。
引擎本身不在调用之间保存任何状态，可以在多个会话之间复用。
"""

import logging
import time
from contextlib import aclosing
from typing import Any, AsyncIterator, Dict, Mapping, Optional
from uuid import uuid4

from locus_core.domain.exceptions import BusinessError, ConfigurationError, UnimplementedProviderError
from locus_core.domain.models import ProviderKind, QueryRequest
from locus_core.infrastructure.http.transport import StreamTransport
from locus_core.infrastructure.logging.logger import logger
from locus_core.providers import ProviderAdapter, create_adapters
from locus_core.providers.decoder import drain_fragments

MISSING_KEY_MESSAGE = "API Key is missing. Please configure it in Settings."


def render_error(message: str, separated: bool = True) -> str:
    """把错误渲染为面向用户的文本片段。"""

    prefix = "\n\n" if separated else ""
    return f"{prefix}Error: {message}"


class QueryEngine:
    def __init__(
        self,
        settings=None,
        transport: Optional[StreamTransport] = None,
        adapters: Optional[Mapping[ProviderKind, ProviderAdapter]] = None,
    ):
        self._settings = settings
        self._transport = transport or StreamTransport(timeout=getattr(settings, "http_timeout", 60.0))
        self._adapters = dict(adapters) if adapters is not None else create_adapters(settings)

    async def stream(self, req: QueryRequest) -> AsyncIterator[str]:
        """执行一次查询，逐个产出文本片段。

        错误不会抛出到调用方（请求本身不合法时除外），而是以最后一个
        片段的形式出现，调用方可以把它当作普通文本展示。
        """

        req.validate()
        log_ctx: Dict[str, Any] = {
            "trace_id": f"tr-{uuid4().hex}",
            "provider": req.provider.value,
        }

        # 1. 凭证校验（自定义端点允许不带 Key）
        if not req.has_credential and req.provider != ProviderKind.CUSTOM:
            self._log(logging.WARNING, "Missing credential", log_ctx)
            yield render_error(MISSING_KEY_MESSAGE, separated=False)
            return

        # 2. 选择适配器并构造线上请求
        adapter = self._adapters[req.provider]
        try:
            wire = adapter.build_request(req)
        except UnimplementedProviderError as e:
            self._log(logging.INFO, "Provider not available", log_ctx)
            yield e.message
            return
        except ConfigurationError as e:
            self._log(logging.WARNING, "Invalid provider configuration", log_ctx, code=e.code)
            yield render_error(e.message, separated=False)
            return
        except Exception as e:
            self._log(logging.ERROR, "Failed to build provider request", log_ctx, error_type=type(e).__name__)
            yield render_error(str(e) or type(e).__name__, separated=False)
            return

        # 3. 调用传输层并解码
        self._log(
            logging.INFO,
            "Calling provider",
            log_ctx,
            model=req.model,
            turn_count=len(req.conversation),
            streaming=adapter.streaming,
        )
        start_time = time.time()
        emitted = 0
        try:
            chunks = self._transport.open(wire, streaming=adapter.streaming, error_label=adapter.error_label)
            async with aclosing(chunks), aclosing(drain_fragments(adapter.new_decoder(), chunks)) as fragments:
                async for fragment in fragments:
                    emitted += 1
                    yield fragment
        except BusinessError as e:
            self._log(
                logging.ERROR,
                "Provider call failed",
                log_ctx,
                code=e.code,
                http_status=getattr(e, "status", None),
                fragments=emitted,
            )
            yield render_error(e.message)
            return
        except Exception as e:
            # 非业务异常（例如请求体无法序列化）同样收敛为错误片段
            self._log(
                logging.ERROR,
                "Unexpected provider failure",
                log_ctx,
                error_type=type(e).__name__,
                fragments=emitted,
            )
            yield render_error(str(e) or type(e).__name__)
            return

        self._log(
            logging.INFO,
            "Completed provider call",
            log_ctx,
            elapsed_seconds=round(time.time() - start_time, 2),
            fragments=emitted,
        )

    async def collect(self, req: QueryRequest) -> str:
        """非流式便捷方法：拼接全部片段。"""

        parts = []
        async for fragment in self.stream(req):
            parts.append(fragment)
        return "".join(parts)

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
