"""
generators パッケージ — ターゲット言語ごとのコード生成器

主要エクスポート:
  - LanguageGenerator: 生成器の共通 Protocol
  - ActionInContext: 生成器に渡すアクション + 名前情報
  - HighlighterType: 出力テキストの構文ファミリー
  - GeneratorRegistry / create_default_registry: 言語名 → 生成器の登録簿
  - JavaScriptLanguageGenerator / PythonLanguageGenerator / CSharpLanguageGenerator
"""

from .base import ActionInContext, HighlighterType, LanguageGenerator
from .csharp import CSharpLanguageGenerator
from .javascript import JavaScriptLanguageGenerator
from .python import PythonLanguageGenerator
from .registry import GeneratorInfo, GeneratorRegistry, create_default_registry

__all__ = [
    "ActionInContext",
    "CSharpLanguageGenerator",
    "GeneratorInfo",
    "GeneratorRegistry",
    "HighlighterType",
    "JavaScriptLanguageGenerator",
    "LanguageGenerator",
    "PythonLanguageGenerator",
    "create_default_registry",
]
