"""
アクションログ — 記録セッションの YAML 保存・読み込みと再出力

記録済みのアクション列とセッション設定を YAML として保存しておき、
後から任意の出力言語でコードを再生成できるようにする。
ブラウザは起動せず、保存されたアクションを RecorderController に流し直す。

YAML 形式:
  context_label: chromium
  device: null
  launch: {headless: false, ...}
  context: {viewport: {width: 1280, height: 720}, ...}
  entries:
    - in_flight: false
      action: {context_id: ctx-1, kind: navigate, value: https://example.com, ...}
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, Sequence

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .actions import Action
from .config import ContextConfig, LaunchConfig
from .controller import RecorderController, Session
from .errors import ActionLogError, SinkWriteError
from .generators.registry import GeneratorRegistry
from .sinks import OutputSink

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ログモデル
# ---------------------------------------------------------------------------

class LogEntry(BaseModel):
    """記録された 1 アクションと配送時の状態。"""

    action: Action
    in_flight: bool = False


class ActionLog(BaseModel):
    """保存・再出力の単位となる記録セッション。

    Attributes:
        context_label: ブラウザ種別名
        device: エミュレートするデバイス名
        launch: 起動設定
        context: コンテキスト設定
        entries: 到着順のアクション
    """

    context_label: str = "chromium"
    device: Optional[str] = None
    launch: LaunchConfig = Field(default_factory=LaunchConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)
    entries: list[LogEntry] = Field(default_factory=list)

    @classmethod
    def from_session(cls, session: Session) -> ActionLog:
        """コントローラのセッションスナップショットからログを作成する。

        Raises:
            ValueError: セッションが開始されていない場合
        """
        if session.context_label is None:
            raise ValueError("開始されていないセッションは保存できません")
        return cls(
            context_label=session.context_label,
            device=session.device_label,
            launch=session.launch_config or LaunchConfig(),
            context=session.context_config or ContextConfig(),
            entries=[
                LogEntry(action=action, in_flight=in_flight)
                for action, in_flight in session.entries
            ],
        )

    @property
    def actions(self) -> list[Action]:
        return [entry.action for entry in self.entries]


# ---------------------------------------------------------------------------
# 保存・読み込み
# ---------------------------------------------------------------------------

def _yaml() -> YAML:
    yaml = YAML()
    yaml.default_flow_style = False
    return yaml


def save_log(log: ActionLog, path: Path) -> None:
    """アクションログを YAML ファイルに書き出す。

    Args:
        log: 書き出すログ
        path: 出力先ファイルパス（親ディレクトリがなければ作成する）
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = log.model_dump(mode="json", exclude_none=True)
    with open(path, "w", encoding="utf-8") as f:
        _yaml().dump(data, f)

    logger.info("アクションログを保存しました: %s (%d 件)", path, len(log.entries))


def load_log(path: Path) -> ActionLog:
    """YAML ファイルからアクションログを読み込む。

    Raises:
        FileNotFoundError: ファイルが存在しない場合
        ActionLogError: YAML 構文エラーまたはスキーマ検証エラーの場合
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"アクションログが見つかりません: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = _yaml().load(f)
    except YAMLError as e:
        line_info = ""
        if getattr(e, "problem_mark", None) is not None:
            mark = e.problem_mark
            line_info = f" (行 {mark.line + 1}, 列 {mark.column + 1})"
        raise ActionLogError(f"YAML 構文エラー{line_info}: {e}") from e

    if data is None:
        raise ActionLogError("アクションログが空です")

    try:
        log = ActionLog.model_validate(_to_plain(data))
    except PydanticValidationError as e:
        raise ActionLogError(f"スキーマ検証エラー: {e}") from e

    logger.debug("アクションログを読み込みました: %s (%d 件)", path, len(log.entries))
    return log


def _to_plain(data: object) -> object:
    """ruamel.yaml の CommentedMap/CommentedSeq を通常の dict/list に再帰変換する。"""
    if isinstance(data, dict):
        return {key: _to_plain(value) for key, value in data.items()}
    if isinstance(data, list):
        return [_to_plain(item) for item in data]
    return data


# ---------------------------------------------------------------------------
# 再出力
# ---------------------------------------------------------------------------

def render_log(
    log: ActionLog,
    registry: GeneratorRegistry,
    targets: Sequence[str],
    sink_factory: Callable[[str], Sequence[OutputSink]],
    storage_state_path: Optional[str] = None,
) -> RecorderController:
    """保存されたログを指定言語で再出力する。

    ライブ記録と同じ RecorderController を通すため、出力は記録時と同一になる。

    Args:
        log: 再出力するログ
        registry: 生成器レジストリ
        targets: 出力言語名のリスト
        sink_factory: 言語名から出力先リストを返す関数
        storage_state_path: 指定時はフッターでストレージ状態を保存する

    Returns:
        終了済みのコントローラ（diagnostics で描画失敗を確認できる）
    """
    controller = RecorderController.from_registry(registry, targets, sink_factory)
    controller.start(log.context_label, log.launch, log.context, log.device)
    try:
        for entry in log.entries:
            controller.record(entry.action, in_flight=entry.in_flight)
    except Exception:
        # 元の例外を優先し、フッター出力の失敗はログに残すだけにする
        try:
            controller.stop(storage_state_path)
        except SinkWriteError as stop_error:
            logger.error("再出力の中断時にフッターを出力できませんでした: %s", stop_error)
        raise
    controller.stop(storage_state_path)

    logger.info(
        "アクションログを再出力しました: %s (%d 件)",
        ", ".join(targets), len(log.entries),
    )
    return controller
