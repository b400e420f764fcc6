"""
生成器インターフェース — 全ターゲット言語共通の能力セット

各ターゲット言語の生成器はこの Protocol を満たし、
RecorderController からは言語を意識せずに同一の方法で呼び出される。

主な構成:
  - HighlighterType: 出力テキストの構文ファミリー（表示用メタ情報）
  - ActionInContext: アクション + コントローラが割り当てた言語非依存の名前情報
  - LanguageGenerator Protocol: header / action / footer / highlighter_type
  - SignalSet: アクションのシグナルを種別ごとに取り出したもの
  - 文字列リテラル・コメント用のエスケープ補助関数
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..actions import (
        Action,
        DialogSignal,
        DownloadSignal,
        NavigationSignal,
        PopupSignal,
    )
    from ..config import ContextConfig, LaunchConfig

# コメントを 1 行に収めるために空白へ置換する文字（制御文字と各言語の改行文字）
_COMMENT_UNSAFE = re.compile(r"[\x00-\x1f\x7f\x85\u2028\u2029]")

# 区切り線（フッターの先頭に出力する）
SEPARATOR = "---------------------"


class HighlighterType(str, enum.Enum):
    """出力テキストの構文ファミリー。シンタックスハイライトの選択にのみ使う。"""

    JAVASCRIPT = "javascript"
    CSHARP = "csharp"
    PYTHON = "python"


# ---------------------------------------------------------------------------
# アクション + コンテキスト情報
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ActionInContext:
    """生成器に渡すアクションと、コントローラが割り当てた名前情報。

    変数名はコントローラが言語非依存に割り当てるため、
    全生成器で同じ名前（page, page1, download1 等）が使われる。

    Attributes:
        action: 記録されたアクション
        page_alias: 操作対象コンテキストのページ変数名
        opens_page: このアクションでページ変数を新規に宣言する必要があるか
        announced: popup シグナルで事前に通知済みのコンテキストか
        popup_alias: popup シグナルで開くコンテキストのページ変数名
        download_alias: download シグナルで得るダウンロードの変数名
    """

    action: Action
    page_alias: str = "page"
    opens_page: bool = False
    announced: bool = False
    popup_alias: Optional[str] = None
    download_alias: Optional[str] = None


# ---------------------------------------------------------------------------
# LanguageGenerator Protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class LanguageGenerator(Protocol):
    """ターゲット言語ごとのコード生成器の共通インターフェース。

    生成器はアクション列に対して純粋であり、同じ入力列と設定からは
    常に同じテキストを出力する。生成器間で可変状態は共有しない。
    """

    def generate_header(
        self,
        context_label: str,
        launch_config: LaunchConfig,
        context_config: ContextConfig,
        device_label: Optional[str] = None,
    ) -> str:
        """セッション開始時に一度だけ呼ばれ、import とブラウザ起動コードを返す。

        Args:
            context_label: ブラウザ種別名（chromium / firefox / webkit）
            launch_config: ブラウザ起動設定
            context_config: コンテキスト設定
            device_label: エミュレートするデバイス名
        """
        ...

    def generate_action(self, action: ActionInContext, in_flight: bool) -> str:
        """1 アクションを再現する文を返す。

        Args:
            action: アクションと名前情報
            in_flight: アクションがまだ実行中（遷移待ち等）かどうか
        """
        ...

    def generate_footer(self, storage_state_path: Optional[str] = None) -> str:
        """セッション終了時に一度だけ呼ばれ、後始末のコードを返す。

        Args:
            storage_state_path: 指定時はストレージ状態の保存コードを含める
        """
        ...

    def highlighter_type(self) -> HighlighterType:
        """出力テキストの構文ファミリーを返す。"""
        ...


# ---------------------------------------------------------------------------
# シグナルの取り出し
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SignalSet:
    """アクションに付与されたシグナルを種別ごとに保持する。"""

    navigation: Optional[NavigationSignal] = None
    popup: Optional[PopupSignal] = None
    download: Optional[DownloadSignal] = None
    dialog: Optional[DialogSignal] = None

    @classmethod
    def of(cls, action: Action) -> SignalSet:
        return cls(
            navigation=action.signal("navigation"),  # type: ignore[arg-type]
            popup=action.signal("popup"),  # type: ignore[arg-type]
            download=action.signal("download"),  # type: ignore[arg-type]
            dialog=action.signal("dialog"),  # type: ignore[arg-type]
        )


# ---------------------------------------------------------------------------
# エスケープ補助
# ---------------------------------------------------------------------------

def escape_chars(
    value: str,
    quote: str,
    control: Callable[[int], str],
    extra: frozenset[str] = frozenset(),
) -> str:
    """文字列リテラルの中身として安全な形にエスケープする。

    バックスラッシュ・引用符・改行・タブ・その他の制御文字を処理する。
    extra に含まれる文字は control() で数値エスケープする。

    Args:
        value: エスケープ対象の文字列
        quote: リテラルの引用符（' または "）
        control: コードポイントを数値エスケープ表記に変換する関数
        extra: 追加で数値エスケープする文字

    Returns:
        引用符を含まないエスケープ済み文字列
    """
    out: list[str] = []
    for ch in value:
        if ch == "\\":
            out.append("\\\\")
        elif ch == quote:
            out.append("\\" + quote)
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\t":
            out.append("\\t")
        elif ord(ch) < 0x20 or ord(ch) == 0x7F or ch in extra:
            out.append(control(ord(ch)))
        else:
            out.append(ch)
    return "".join(out)


def one_line(text: str) -> str:
    """コメントに埋め込めるよう改行・制御文字を空白に置換する。"""
    return _COMMENT_UNSAFE.sub(" ", text)


def camel_to_snake(name: str) -> str:
    """camelCase のオプション名を snake_case に変換する。"""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def is_blank_url(url: Optional[str]) -> bool:
    """新規タブの初期 URL（遷移不要な URL）かどうかを返す。"""
    return not url or url in ("about:blank", "chrome://newtab/")
