"""
エラー定義 — recode 全体で共有する例外と診断情報

エラーは次の 5 系統に分かれる:
  - 設定エラー: ConfigurationError / UnknownLanguageError
    （セッション開始前に報告し、セッションは始まらない）
  - 生成器の描画不具合: UnsupportedActionError / GeneratorDiagnostic
    （該当生成器だけに閉じ込め、セッションは継続する）
  - 出力先の書き込み失敗: SinkWriteError（自動リトライしない）
  - ライフサイクル違反: LifecycleError / ActionOrderError
  - アクションログの読み込み失敗: ActionLogError
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .actions import Action


class RecodeError(Exception):
    """recode の例外の基底クラス。"""


# ---------------------------------------------------------------------------
# 設定エラー
# ---------------------------------------------------------------------------

class ConfigurationError(RecodeError):
    """起動・コンテキスト設定やターゲット言語の指定が不正な場合のエラー。"""


class UnknownLanguageError(ConfigurationError):
    """未登録のターゲット言語が指定された場合のエラー。

    Attributes:
        name: 指定された言語名
        available: 登録済みの言語名リスト
    """

    def __init__(self, name: str, available: list[str]) -> None:
        self.name = name
        self.available = list(available)
        super().__init__(
            f"ターゲット言語 '{name}' は登録されていません。"
            f"登録済み: [{', '.join(self.available)}]"
        )


# ---------------------------------------------------------------------------
# 生成器の描画不具合
# ---------------------------------------------------------------------------

class UnsupportedActionError(RecodeError):
    """生成器がアクションをターゲット言語で表現できない場合のエラー。"""

    def __init__(self, generator: str, kind: str) -> None:
        self.generator = generator
        self.kind = kind
        super().__init__(
            f"{generator} はアクション '{kind}' を出力できません"
        )


@dataclass(frozen=True)
class GeneratorDiagnostic:
    """単一生成器の描画失敗を表す回復可能な診断情報。

    Attributes:
        generator: 失敗した生成器の登録名
        stage: 失敗した出力段階（header / action / footer）
        error: 発生した例外
        action: 描画に失敗したアクション（action 段階のみ）
    """

    generator: str
    stage: str
    error: BaseException
    action: Optional[Action] = None

    @property
    def message(self) -> str:
        """ログ・表示用のメッセージを返す。"""
        target = self.action.kind.value if self.action is not None else self.stage
        return f"[{self.generator}] {target} の出力に失敗しました: {self.error}"


# ---------------------------------------------------------------------------
# 出力先の書き込み失敗
# ---------------------------------------------------------------------------

class SinkWriteError(RecodeError):
    """出力先への書き込みが失敗した場合のエラー。

    失敗した出力先と例外の組をすべて保持する。
    書き込みは再試行されない（部分的に書かれたテキストの重複を避けるため）。

    Attributes:
        failures: (出力先, 例外) のリスト
        emissions: 失敗時点までに各生成器が描画した結果
    """

    def __init__(
        self,
        failures: list[tuple[Any, BaseException]],
        emissions: Optional[list[Any]] = None,
    ) -> None:
        self.failures = list(failures)
        self.emissions = list(emissions or [])
        details = "; ".join(
            f"{type(sink).__name__}: {exc}" for sink, exc in self.failures
        )
        super().__init__(f"出力先への書き込みに失敗しました ({details})")


# ---------------------------------------------------------------------------
# ライフサイクル違反
# ---------------------------------------------------------------------------

class LifecycleError(RecodeError):
    """セッション状態に合わない操作が呼ばれた場合のエラー。

    Attributes:
        operation: 呼ばれた操作名（start / record / stop）
        state: 呼び出し時のセッション状態
    """

    def __init__(self, operation: str, state: str) -> None:
        self.operation = operation
        self.state = state
        super().__init__(
            f"セッション状態 '{state}' では {operation}() を呼べません"
        )


class ActionOrderError(RecodeError):
    """同一コンテキスト内でアクションの順序が逆転した場合のエラー。"""

    def __init__(self, context_id: str, timestamp: float, last: float) -> None:
        self.context_id = context_id
        self.timestamp = timestamp
        self.last = last
        super().__init__(
            f"コンテキスト '{context_id}' のアクション順序が不正です "
            f"(timestamp={timestamp} < 直前={last})"
        )


# ---------------------------------------------------------------------------
# アクションログ
# ---------------------------------------------------------------------------

class ActionLogError(RecodeError):
    """アクションログの読み込み（YAML 構文・スキーマ）に失敗した場合のエラー。"""
