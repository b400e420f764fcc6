"""
アクションモデル — 記録された単一ユーザー操作の不変データ

上流の分類器（ブラウザイベント → アクション分類）が生成し、
RecorderController に渡された後は一切変更されない値オブジェクト。

主な構成:
  - ActionKind: アクション種別（閉じた集合）
  - Signal: アクションに付随する副作用の注釈（navigation / popup / download / dialog）
  - FrameDescription: 操作対象のフレーム
  - Action: 記録された操作本体（pydantic frozen モデル）
"""

from __future__ import annotations

import enum
import re
import time
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

# set-viewport-or-storage の値がビューポート指定かを判定する正規表現
_VIEWPORT_PATTERN = re.compile(r"^\s*(\d+)\s*[x,]\s*(\d+)\s*$")


# ---------------------------------------------------------------------------
# アクション種別
# ---------------------------------------------------------------------------

class ActionKind(str, enum.Enum):
    """記録されるアクションの種別。"""

    NAVIGATE = "navigate"
    CLICK = "click"
    FILL = "fill"
    CHECK = "check"
    UNCHECK = "uncheck"
    SELECT = "select"
    PRESS_KEY = "press-key"
    SET_VIEWPORT_OR_STORAGE = "set-viewport-or-storage"
    WAIT_FOR_NAVIGATION = "wait-for-navigation"
    POPUP_OPENED = "popup-opened"
    DOWNLOAD_STARTED = "download-started"
    DIALOG_APPEARED = "dialog-appeared"
    CLOSED = "closed"


# セレクタが必須のアクション種別
SELECTOR_KINDS = frozenset({
    ActionKind.CLICK,
    ActionKind.FILL,
    ActionKind.CHECK,
    ActionKind.UNCHECK,
    ActionKind.SELECT,
    ActionKind.PRESS_KEY,
})

# 副作用を持つ文として数えるアクション種別
SIDE_EFFECT_KINDS = SELECTOR_KINDS | {ActionKind.NAVIGATE}


# ---------------------------------------------------------------------------
# シグナル
# ---------------------------------------------------------------------------

class _SignalBase(BaseModel):
    model_config = ConfigDict(frozen=True)


class NavigationSignal(_SignalBase):
    """操作によってページ遷移が発生したことを表す。"""

    name: Literal["navigation"] = "navigation"
    url: str


class PopupSignal(_SignalBase):
    """操作によって新しいブラウジングコンテキストが開いたことを表す。

    context_id は新しく開いたコンテキストの ID。
    """

    name: Literal["popup"] = "popup"
    context_id: str


class DownloadSignal(_SignalBase):
    """操作によってダウンロードが開始したことを表す。"""

    name: Literal["download"] = "download"
    suggested_filename: Optional[str] = None


class DialogSignal(_SignalBase):
    """操作によってダイアログ（alert / confirm / prompt）が表示されたことを表す。"""

    name: Literal["dialog"] = "dialog"
    dialog_type: Optional[str] = None
    message: Optional[str] = None


Signal = Annotated[
    Union[NavigationSignal, PopupSignal, DownloadSignal, DialogSignal],
    Field(discriminator="name"),
]

# シグナル種別ごとに付与可能なアクション種別
ALLOWED_SIGNALS: dict[str, frozenset[ActionKind]] = {
    "navigation": SIDE_EFFECT_KINDS,
    "popup": frozenset({ActionKind.CLICK, ActionKind.PRESS_KEY}),
    "download": frozenset({ActionKind.CLICK, ActionKind.PRESS_KEY}),
    "dialog": SIDE_EFFECT_KINDS,
}


# ---------------------------------------------------------------------------
# フレーム
# ---------------------------------------------------------------------------

class FrameDescription(BaseModel):
    """操作対象のフレーム。

    Attributes:
        is_main_frame: トップレベルフレームかどうか
        name: フレーム名（name 属性）
        url: フレームの URL（名前がない子フレームの特定に使用）
    """

    model_config = ConfigDict(frozen=True)

    is_main_frame: bool = True
    name: Optional[str] = None
    url: Optional[str] = None


# ---------------------------------------------------------------------------
# Action 本体
# ---------------------------------------------------------------------------

class Action(BaseModel):
    """記録された単一のユーザー操作。

    生成時にすべてのフィールドが確定し、以後変更されない。
    不正な組み合わせ（セレクタ欠落、許可されないシグナル等）は
    生成時に ValidationError となる。

    Attributes:
        context_id: 操作が行われたブラウジングコンテキスト（タブ / ウィンドウ）の ID
        frame: 操作対象のフレーム
        kind: アクション種別
        selector: エンジンが生成したロケータ文字列（そのまま出力する）
        value: 入力テキスト・遷移先 URL・キー名など
        options: select で選択したオプション値
        button: click のマウスボタン
        modifiers: 修飾キー（Alt / Control / Meta / Shift）
        click_count: クリック回数
        timestamp: 単調増加の順序キー（同一コンテキスト内の到着順と配送の同一性を表す）
        signals: 副作用の注釈
    """

    model_config = ConfigDict(frozen=True)

    context_id: str
    frame: FrameDescription = Field(default_factory=FrameDescription)
    kind: ActionKind
    selector: Optional[str] = None
    value: Optional[str] = None
    options: tuple[str, ...] = ()
    button: Literal["left", "middle", "right"] = "left"
    modifiers: tuple[Literal["Alt", "Control", "Meta", "Shift"], ...] = ()
    click_count: int = Field(default=1, ge=1)
    timestamp: float = Field(default_factory=time.monotonic)
    signals: tuple[Signal, ...] = ()

    @model_validator(mode="after")
    def _check_consistency(self) -> Action:
        if self.kind in SELECTOR_KINDS and not self.selector:
            raise ValueError(f"{self.kind.value} にはセレクタが必要です")
        if self.kind == ActionKind.NAVIGATE and not self.value:
            raise ValueError("navigate には遷移先 URL (value) が必要です")
        if self.kind == ActionKind.PRESS_KEY and not self.value:
            raise ValueError("press-key にはキー名 (value) が必要です")
        if self.kind == ActionKind.SELECT and not (self.options or self.value):
            raise ValueError("select には選択値 (options / value) が必要です")
        if self.kind == ActionKind.SET_VIEWPORT_OR_STORAGE and not self.value:
            raise ValueError("set-viewport-or-storage には value が必要です")

        seen: set[str] = set()
        for signal in self.signals:
            if signal.name in seen:
                raise ValueError(f"シグナル '{signal.name}' が重複しています")
            seen.add(signal.name)
            if self.kind not in ALLOWED_SIGNALS[signal.name]:
                raise ValueError(
                    f"{self.kind.value} にシグナル '{signal.name}' は付与できません"
                )
        return self

    # ----- 参照用ヘルパー -----

    def signal(self, name: str) -> Optional[Signal]:
        """指定名のシグナルを返す。付与されていなければ None。"""
        for signal in self.signals:
            if signal.name == name:
                return signal
        return None

    @property
    def selected_options(self) -> tuple[str, ...]:
        """select で選択された値を返す（options 優先、なければ value）。"""
        if self.options:
            return self.options
        return (self.value,) if self.value is not None else ()

    @property
    def shortcut(self) -> str:
        """press-key のキー表記（修飾キーを + で連結）を返す。"""
        return "+".join([*self.modifiers, self.value or ""])

    @property
    def viewport_size(self) -> Optional[tuple[int, int]]:
        """set-viewport-or-storage の値がビューポート指定なら (幅, 高さ) を返す。"""
        if self.kind != ActionKind.SET_VIEWPORT_OR_STORAGE or self.value is None:
            return None
        match = _VIEWPORT_PATTERN.match(self.value)
        if not match:
            return None
        return int(match.group(1)), int(match.group(2))

    @property
    def title(self) -> str:
        """出力コードのコメントに使う操作の見出しを返す。"""
        kind = self.kind
        if kind == ActionKind.NAVIGATE:
            return f"Go to {self.value}"
        if kind == ActionKind.CLICK:
            if self.click_count == 2:
                return f"Double click {self.selector}"
            return f"Click {self.selector}"
        if kind == ActionKind.FILL:
            return f"Fill {self.selector}"
        if kind == ActionKind.CHECK:
            return f"Check {self.selector}"
        if kind == ActionKind.UNCHECK:
            return f"Uncheck {self.selector}"
        if kind == ActionKind.SELECT:
            return f"Select {', '.join(self.selected_options)}"
        if kind == ActionKind.PRESS_KEY:
            return f"Press {self.shortcut}"
        if kind == ActionKind.SET_VIEWPORT_OR_STORAGE:
            if self.viewport_size is not None:
                return "Set viewport size"
            return "Save storage state"
        if kind == ActionKind.WAIT_FOR_NAVIGATION:
            return "Wait for navigation"
        if kind == ActionKind.POPUP_OPENED:
            return "Open new page"
        if kind == ActionKind.DOWNLOAD_STARTED:
            if self.value:
                return f"Download started: {self.value}"
            return "Download started"
        if kind == ActionKind.DIALOG_APPEARED:
            return "Handle dialog"
        return "Close page"
