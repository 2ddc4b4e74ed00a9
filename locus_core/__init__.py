"""Locus Core 顶层包。

该包提供阅读器 AI 注释层的核心实现：多 Provider 的流式查询引擎、
选段分析会话控制器，以及配置加载、日志等基础设施。
"""

from locus_core.api.service import create_engine, create_session_controller, open_settings

__all__ = ["create_engine", "create_session_controller", "open_settings"]
