"""
生成器レジストリ — 出力言語名から生成器を引くための登録簿

新しいターゲット言語はファクトリを register() するだけで追加できる。
未登録の言語名の指定はユーザーの設定エラー（UnknownLanguageError）として扱う。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..errors import UnknownLanguageError
from .base import HighlighterType, LanguageGenerator

logger = logging.getLogger(__name__)

GeneratorFactory = Callable[[], LanguageGenerator]


# ---------------------------------------------------------------------------
# 生成器メタ情報
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GeneratorInfo:
    """生成器のメタ情報。

    Attributes:
        name: 出力言語名（--target 等で指定するキー）
        description: 説明文
        highlighter: 出力テキストの構文ファミリー
    """

    name: str
    description: str
    highlighter: Optional[HighlighterType] = None


# ---------------------------------------------------------------------------
# GeneratorRegistry 本体
# ---------------------------------------------------------------------------

class GeneratorRegistry:
    """出力言語名 → 生成器ファクトリの登録・検索を管理する。

    使用例::

        registry = GeneratorRegistry()
        registry.register("python", PythonLanguageGenerator)
        generator = registry.lookup("python")
    """

    def __init__(self) -> None:
        self._factories: dict[str, GeneratorFactory] = {}
        self._info: dict[str, GeneratorInfo] = {}

    def register(
        self,
        name: str,
        factory: GeneratorFactory,
        *,
        info: Optional[GeneratorInfo] = None,
    ) -> None:
        """生成器ファクトリを登録する。

        同名のファクトリが既に登録されている場合は上書きする（警告を出力）。

        Args:
            name: 出力言語名
            factory: 引数なしで生成器を返す呼び出し可能オブジェクト
            info: メタ情報。None の場合はデフォルト値を使用

        Raises:
            TypeError: factory が呼び出し可能でない場合
        """
        if not callable(factory):
            raise TypeError(
                f"factory は呼び出し可能である必要があります: {type(factory).__name__}"
            )

        if name in self._factories:
            logger.warning("生成器 '%s' のファクトリを上書きします", name)

        self._factories[name] = factory
        self._info[name] = info or GeneratorInfo(
            name=name, description=f"{name} 生成器",
        )
        logger.debug("生成器 '%s' を登録しました", name)

    def lookup(self, name: str) -> LanguageGenerator:
        """出力言語名から新しい生成器インスタンスを生成して返す。

        Raises:
            UnknownLanguageError: 未登録の言語名の場合
            TypeError: ファクトリの戻り値が LanguageGenerator を満たさない場合
        """
        if name not in self._factories:
            raise UnknownLanguageError(name, self.names)

        generator = self._factories[name]()
        if not isinstance(generator, LanguageGenerator):
            raise TypeError(
                f"生成器 '{name}' は LanguageGenerator Protocol を満たしていません: "
                f"{type(generator).__name__}"
            )
        return generator

    def has(self, name: str) -> bool:
        """指定名の生成器が登録されているかを返す。"""
        return name in self._factories

    def list_all(self) -> list[GeneratorInfo]:
        """登録済み全生成器のメタ情報を名前順で返す。"""
        return sorted(self._info.values(), key=lambda i: i.name)

    @property
    def names(self) -> list[str]:
        """登録済み全言語名をソート済みリストで返す。"""
        return sorted(self._factories.keys())


def create_default_registry() -> GeneratorRegistry:
    """標準の生成器（javascript / python / python-async / csharp）を登録したレジストリを返す。"""
    from .csharp import CSharpLanguageGenerator
    from .javascript import JavaScriptLanguageGenerator
    from .python import PythonLanguageGenerator

    registry = GeneratorRegistry()
    registry.register(
        "javascript",
        JavaScriptLanguageGenerator,
        info=GeneratorInfo(
            "javascript", "Playwright for Node.js", HighlighterType.JAVASCRIPT,
        ),
    )
    registry.register(
        "python",
        PythonLanguageGenerator,
        info=GeneratorInfo(
            "python", "Playwright for Python (sync API)", HighlighterType.PYTHON,
        ),
    )
    registry.register(
        "python-async",
        lambda: PythonLanguageGenerator(is_async=True),
        info=GeneratorInfo(
            "python-async", "Playwright for Python (async API)", HighlighterType.PYTHON,
        ),
    )
    registry.register(
        "csharp",
        CSharpLanguageGenerator,
        info=GeneratorInfo(
            "csharp", "Playwright for .NET", HighlighterType.CSHARP,
        ),
    )
    return registry
