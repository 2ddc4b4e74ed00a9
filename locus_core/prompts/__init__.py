"""系统提示词与阅读视角（lens）模板。

system prompt 按语言(locale) 从 prompts/<locale> 目录读取，
对所有 Provider 都相同；lens 模板见 lenses 模块。
"""

from functools import lru_cache
from pathlib import Path

from locus_core.prompts.lenses import AVAILABLE_LENSES, build_lens_prompt

PROMPTS_DIR = Path(__file__).resolve().parent


@lru_cache(maxsize=None)
def load_system_prompt(locale: str = "en") -> str:
    """加载 "Passionate Professor" 人设的系统提示词文本。"""

    fname = PROMPTS_DIR / locale / "professor_system.md"
    return fname.read_text(encoding="utf-8").strip()


__all__ = ["AVAILABLE_LENSES", "build_lens_prompt", "load_system_prompt"]
