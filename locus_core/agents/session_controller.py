"""分析会话控制器（SessionController）。

根据 UI 事件驱动一次选段分析会话的生命周期：

    IDLE --select_text--> AWAITING_SELECTION --choose_lens--> REQUESTING
    REQUESTING --流结束--> ACTIVE_IDLE --send_follow_up--> REQUESTING
    任意状态 --clear--> IDLE

会话只由本控制器修改。每个新会话都会递增 generation，正在进行的请求
在应用每个片段前都会检查 generation；会话被清空后请求不会被真正取消，
后续到达的片段只是被丢弃（放弃语义）。
"""

import logging
from contextlib import aclosing
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from locus_core.agents.query_engine import QueryEngine
from locus_core.domain.models import ConversationTurn, Selection, SessionEvent
from locus_core.infrastructure.logging.logger import logger
from locus_core.prompts import build_lens_prompt, load_system_prompt

DEFAULT_BOOK_TITLE = "Unknown"
SCAN_LENS = "scan"

SessionListener = Callable[[SessionEvent], None]


class ControllerState(str, Enum):
    IDLE = "idle"
    AWAITING_SELECTION = "awaiting_selection"
    ACTIVE_IDLE = "active_idle"
    REQUESTING = "requesting"


@dataclass
class AnalysisSession:
    """一次选段分析会话的全部可变状态。"""

    generation: int
    lens: Optional[str]
    selection: Selection
    turns: List[ConversationTurn] = field(default_factory=list)
    pending: List[str] = field(default_factory=list)
    busy: bool = False


class SessionController:
    def __init__(
        self,
        engine: QueryEngine,
        settings,
        listener: Optional[SessionListener] = None,
        book_title: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ):
        self._engine = engine
        self._settings = settings
        self._listener = listener
        self._book_title = book_title or DEFAULT_BOOK_TITLE
        self._system_prompt = system_prompt if system_prompt is not None else load_system_prompt()
        self._selection: Optional[Selection] = None
        self._location: Optional[str] = None
        self._session: Optional[AnalysisSession] = None
        self._generation = 0

    # ---- 只读快照 ----

    @property
    def state(self) -> ControllerState:
        if self._session is not None:
            return ControllerState.REQUESTING if self._session.busy else ControllerState.ACTIVE_IDLE
        if self._selection is not None:
            return ControllerState.AWAITING_SELECTION
        return ControllerState.IDLE

    @property
    def busy(self) -> bool:
        return self._session is not None and self._session.busy

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def conversation(self) -> Tuple[ConversationTurn, ...]:
        return tuple(self._session.turns) if self._session else ()

    @property
    def pending_text(self) -> str:
        return "".join(self._session.pending) if self._session else ""

    @property
    def lens(self) -> Optional[str]:
        return self._session.lens if self._session else None

    @property
    def selection(self) -> Optional[Selection]:
        return self._selection

    @property
    def location(self) -> Optional[str]:
        return self._location

    @property
    def book_title(self) -> str:
        return self._book_title

    # ---- 渲染引擎事件 ----

    def set_book(self, title: Optional[str]) -> None:
        """书籍元数据加载完成后更新书名。"""

        self._book_title = title or DEFAULT_BOOK_TITLE

    def select_text(self, selection: Selection) -> None:
        """记录新的选区。

        如果当前已有分析会话，新的选区会结束它（与关闭分析面板相同），
        等待用户在新选区上重新选择 lens。
        """

        if self._session is not None:
            self._abandon_session("New selection replaced active session")
        self._selection = selection

    def location_changed(self, locator: Optional[str]) -> None:
        self._location = locator

    # ---- 会话操作 ----

    async def choose_lens(self, lens: Optional[str]) -> Optional[ConversationTurn]:
        """在当前选区上以指定 lens 开启新会话，返回提交的 assistant 轮次。

        没有选区时什么也不做；会话在请求过程中被清空时返回 None。
        """

        if self._selection is None:
            self._log(logging.INFO, "Lens chosen without selection", {}, lens=lens)
            return None
        prompt = build_lens_prompt(lens, self._selection.text, self._book_title)
        return await self._start_session(lens, self._selection, prompt)

    async def scan_view(self, view_text: str, locator: Optional[str] = None) -> Optional[ConversationTurn]:
        """扫描当前视图：以通用分析模板对当前可见文本开启会话。"""

        if not view_text or not view_text.strip():
            return None
        selection = Selection(text=view_text, locator=locator or self._location)
        self._selection = selection
        prompt = build_lens_prompt(None, view_text, self._book_title)
        return await self._start_session(SCAN_LENS, selection, prompt)

    async def send_follow_up(self, text: str) -> Optional[ConversationTurn]:
        """追加一轮用户追问并重新发送完整历史。

        请求进行中或没有活动会话时为 no-op（调用方应在 REQUESTING 期间禁用输入）。
        """

        session = self._session
        if session is None or session.busy or not text or not text.strip():
            self._log(
                logging.INFO,
                "Follow-up ignored",
                {"generation": self._generation},
                state=self.state.value,
            )
            return None
        session.turns.append(ConversationTurn(role="user", content=text))
        return await self._run_request(session)

    def clear(self) -> None:
        """关闭分析面板：无条件丢弃会话、待提交缓冲与选区。"""

        self._abandon_session("Session cleared")
        self._selection = None

    # ---- 内部实现 ----

    async def _start_session(
        self,
        lens: Optional[str],
        selection: Selection,
        prompt: str,
    ) -> Optional[ConversationTurn]:
        if self._session is not None:
            self._abandon_session("Lens changed, previous session abandoned", notify=False)
        self._generation += 1
        session = AnalysisSession(
            generation=self._generation,
            lens=lens,
            selection=selection,
            turns=[ConversationTurn(role="user", content=prompt)],
        )
        self._session = session
        self._log(
            logging.INFO,
            "Started analysis session",
            {"generation": session.generation},
            lens=lens,
            locator=selection.locator,
        )
        return await self._run_request(session)

    async def _run_request(self, session: AnalysisSession) -> Optional[ConversationTurn]:
        generation = session.generation
        session.busy = True
        session.pending = []
        try:
            request = self._settings.to_query_request(self._system_prompt, session.turns)

            async with aclosing(self._engine.stream(request)) as fragments:
                async for fragment in fragments:
                    # 会话已被清空或替换：继续读完但不再应用
                    if not self._is_current(generation):
                        continue
                    session.pending.append(fragment)
                    self._emit(SessionEvent(kind="delta", generation=generation, delta_text=fragment))

            if not self._is_current(generation):
                self._log(logging.INFO, "Dropped abandoned reply", {"generation": generation})
                return None

            turn = ConversationTurn(role="assistant", content="".join(session.pending))
            session.turns.append(turn)
            session.pending = []
            session.busy = False
            self._emit(SessionEvent(kind="final", generation=generation, turn=turn))
            return turn
        finally:
            # 请求异常结束时会话回到 ACTIVE_IDLE，未提交的片段丢弃
            if self._is_current(generation) and session.busy:
                self._log(logging.WARNING, "Request ended without a reply", {"generation": generation})
                session.pending = []
                session.busy = False

    def _is_current(self, generation: int) -> bool:
        return self._session is not None and self._session.generation == generation

    def _abandon_session(self, reason: str, notify: bool = True) -> None:
        abandoned = self._session
        self._session = None
        self._generation += 1
        if abandoned is not None:
            self._log(
                logging.INFO,
                reason,
                {"generation": abandoned.generation},
                in_flight=abandoned.busy,
                turns=len(abandoned.turns),
            )
        if notify:
            self._emit(SessionEvent(kind="cleared", generation=self._generation))

    def _emit(self, event: SessionEvent) -> None:
        if self._listener is not None:
            self._listener(event)

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
