"""对外 API 服务模块。

提供简化的工厂函数供阅读器 UI 调用：加载配置、挂载日志、
组装 QueryEngine 与 SessionController。不维护任何模块级单例。
"""

from typing import Optional

from locus_core.agents.query_engine import QueryEngine
from locus_core.agents.session_controller import SessionController, SessionListener
from locus_core.config.settings import LocusSettings, load_settings
from locus_core.config.store import SettingsStore, load_from_store
from locus_core.infrastructure.http.transport import StreamTransport
from locus_core.infrastructure.logging.logger import setup_logger


def create_engine(
    settings: LocusSettings,
    transport: Optional[StreamTransport] = None,
) -> QueryEngine:
    """根据配置创建 QueryEngine（同一实例可在多个会话间复用）。"""

    setup_logger(settings)
    return QueryEngine(settings, transport=transport)


def create_session_controller(
    settings: Optional[LocusSettings] = None,
    listener: Optional[SessionListener] = None,
    book_title: Optional[str] = None,
    engine: Optional[QueryEngine] = None,
) -> SessionController:
    """创建一个绑定到当前书籍的会话控制器。

    Args:
        settings: 配置实例（可选，不提供则从环境/.env/config.yaml 加载）
        listener: 接收 SessionEvent 的回调（可选）
        book_title: 书名（可选，元数据加载后也可通过 set_book 更新）
        engine: 复用已有的 QueryEngine（可选）
    """
    settings = settings or load_settings()
    engine = engine or create_engine(settings)
    return SessionController(engine, settings, listener=listener, book_title=book_title)


async def open_settings(store: SettingsStore, base: Optional[LocusSettings] = None) -> LocusSettings:
    """打开设置面板时从外部存储读取一次配置。"""

    return await load_from_store(store, base=base or load_settings())
