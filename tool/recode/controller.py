"""
RecorderController — 記録セッションのライフサイクル管理とアクションの配送

上流から届くアクションを到着順に受け取り、登録済みの全生成器へ
登録順に 1 回ずつ配送して、各生成器の出力先に書き込む。

主な機能:
  - セッション開始時のヘッダー出力（1 回のみ）
  - アクションの重複排除とコンテキスト内の順序検証
  - ページ変数名（page, page1, ...）とダウンロード変数名の割り当て
  - 生成器ごとの描画失敗の隔離（GeneratorDiagnostic）
  - セッション終了時のフッター出力（1 回のみ）
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Sequence

from .actions import Action, ActionKind
from .config import ContextConfig, LaunchConfig, lookup_browser, lookup_device
from .errors import (
    ActionOrderError,
    ConfigurationError,
    GeneratorDiagnostic,
    LifecycleError,
    SinkWriteError,
)
from .generators.base import ActionInContext, LanguageGenerator
from .sinks import OutputSink

if TYPE_CHECKING:
    from .generators.registry import GeneratorRegistry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# セッション状態
# ---------------------------------------------------------------------------

class SessionState(enum.Enum):
    """記録セッションの状態。"""

    IDLE = "idle"
    RECORDING = "recording"
    STOPPED = "stopped"


@dataclass(frozen=True)
class Session:
    """記録セッションの読み取り専用スナップショット。

    Attributes:
        state: セッション状態
        context_label: ブラウザ種別名
        launch_config: 起動設定
        context_config: コンテキスト設定
        device_label: エミュレートするデバイス名
        actions: 受理済みアクション（到着順）
        in_flight: 各アクションの配送時の in_flight 指定（actions と同じ順）
        page_aliases: コンテキスト ID → ページ変数名
    """

    state: SessionState
    context_label: Optional[str]
    launch_config: Optional[LaunchConfig]
    context_config: Optional[ContextConfig]
    device_label: Optional[str]
    actions: tuple[Action, ...]
    in_flight: tuple[bool, ...]
    page_aliases: dict[str, str]

    @property
    def entries(self) -> list[tuple[Action, bool]]:
        """(アクション, in_flight) の組を到着順に返す。"""
        return list(zip(self.actions, self.in_flight))


@dataclass(frozen=True)
class Emission:
    """1 生成器の 1 回分の出力結果。

    text と diagnostic のどちらか一方が設定される。
    """

    generator: str
    text: Optional[str] = None
    diagnostic: Optional[GeneratorDiagnostic] = None

    @property
    def ok(self) -> bool:
        return self.diagnostic is None


@dataclass
class _Channel:
    """登録された生成器とその出力先。"""

    name: str
    generator: LanguageGenerator
    sinks: list[OutputSink]


# ---------------------------------------------------------------------------
# RecorderController 本体
# ---------------------------------------------------------------------------

class RecorderController:
    """記録セッションを管理し、アクションを全生成器へ配送する。

    エントリポイント（start / record / stop）はロックで直列化され、
    同一セッションへの record() が並行して処理されることはない。

    使用例::

        controller = RecorderController()
        controller.add_generator("python", PythonLanguageGenerator(), [StreamSink(sys.stdout)])
        controller.start("chromium", LaunchConfig(), ContextConfig())
        controller.record(action)
        controller.stop()
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._channels: list[_Channel] = []
        self._diagnostics: list[GeneratorDiagnostic] = []

        self._context_label: Optional[str] = None
        self._launch_config: Optional[LaunchConfig] = None
        self._context_config: Optional[ContextConfig] = None
        self._device_label: Optional[str] = None

        self._actions: list[Action] = []
        self._in_flight: list[bool] = []
        self._accepted: set[Action] = set()
        self._last_timestamp: dict[str, float] = {}
        self._page_aliases: dict[str, str] = {}
        self._announced: set[str] = set()
        self._closed_contexts: set[str] = set()
        self._page_count = 0
        self._download_count = 0

    # ----- 生成の構成 -----

    @classmethod
    def from_registry(
        cls,
        registry: GeneratorRegistry,
        targets: Sequence[str],
        sink_factory: Callable[[str], Sequence[OutputSink]],
    ) -> RecorderController:
        """レジストリから出力言語名で生成器を引き、コントローラを構築する。

        全言語名を先に解決するため、未登録の名前があれば
        何も登録せずに UnknownLanguageError となる。

        Args:
            registry: 生成器レジストリ
            targets: 出力言語名のリスト（この順に配送する）
            sink_factory: 言語名から出力先リストを返す関数
        """
        if not targets:
            raise ConfigurationError("出力言語が指定されていません")
        generators = [(name, registry.lookup(name)) for name in targets]

        controller = cls()
        for name, generator in generators:
            controller.add_generator(name, generator, sink_factory(name))
        return controller

    def add_generator(
        self,
        name: str,
        generator: LanguageGenerator,
        sinks: Sequence[OutputSink],
    ) -> None:
        """生成器と出力先を登録する。セッション開始前のみ呼べる。

        Raises:
            LifecycleError: セッション開始後に呼ばれた場合
            ConfigurationError: 同名の生成器が登録済みの場合
        """
        with self._lock:
            if self._state != SessionState.IDLE:
                raise LifecycleError("add_generator", self._state.value)
            if any(c.name == name for c in self._channels):
                raise ConfigurationError(f"生成器 '{name}' は既に登録されています")
            self._channels.append(_Channel(name, generator, list(sinks)))
            logger.debug("生成器を登録しました: %s (出力先 %d 件)", name, len(sinks))

    # ----- 状態参照 -----

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def generator_names(self) -> list[str]:
        """登録順の生成器名を返す。"""
        return [c.name for c in self._channels]

    @property
    def diagnostics(self) -> list[GeneratorDiagnostic]:
        """これまでに発生した生成器の描画失敗を返す。"""
        return list(self._diagnostics)

    @property
    def open_contexts(self) -> set[str]:
        """まだ閉じられていないコンテキスト ID を返す。"""
        return set(self._page_aliases) - self._closed_contexts

    @property
    def session(self) -> Session:
        with self._lock:
            return Session(
                state=self._state,
                context_label=self._context_label,
                launch_config=self._launch_config,
                context_config=self._context_config,
                device_label=self._device_label,
                actions=tuple(self._actions),
                in_flight=tuple(self._in_flight),
                page_aliases=dict(self._page_aliases),
            )

    # ----- ライフサイクル -----

    def start(
        self,
        context_label: str,
        launch_config: LaunchConfig,
        context_config: ContextConfig,
        device_label: Optional[str] = None,
    ) -> list[Emission]:
        """セッションを開始し、全生成器のヘッダーを出力する。

        Raises:
            LifecycleError: 既に開始済みの場合
            ConfigurationError: ブラウザ名・デバイス名が不正、または生成器が未登録の場合
            SinkWriteError: 出力先への書き込みに失敗した場合
        """
        with self._lock:
            if self._state != SessionState.IDLE:
                raise LifecycleError("start", self._state.value)
            label = lookup_browser(context_label)
            if device_label is not None:
                lookup_device(device_label)
            if not self._channels:
                raise ConfigurationError("生成器が 1 つも登録されていません")

            self._context_label = label
            self._launch_config = launch_config
            self._context_config = context_config
            self._device_label = device_label
            self._state = SessionState.RECORDING
            logger.info(
                "記録を開始しました: %s (生成器: %s)",
                label, ", ".join(self.generator_names),
            )

            return self._emit(
                "header",
                lambda g: g.generate_header(
                    label, launch_config, context_config, device_label,
                ),
            )

    def record(self, action: Action, *, in_flight: bool = False) -> list[Emission]:
        """アクションを受理し、全生成器へ登録順に配送する。

        同一のアクション（全フィールドが等しい）が再送された場合は
        重複として無視し、空リストを返す。

        Args:
            action: 記録されたアクション
            in_flight: アクションがまだ実行中かどうか

        Returns:
            生成器ごとの出力結果（登録順）

        Raises:
            LifecycleError: セッションが記録中でない場合
            ActionOrderError: 同一コンテキスト内で timestamp が逆行した場合
            SinkWriteError: 出力先への書き込みに失敗した場合
        """
        with self._lock:
            if self._state != SessionState.RECORDING:
                raise LifecycleError("record", self._state.value)

            if action in self._accepted:
                logger.warning(
                    "重複したアクションを無視しました: %s (%s)",
                    action.kind.value, action.context_id,
                )
                return []

            last = self._last_timestamp.get(action.context_id)
            if last is not None and action.timestamp < last:
                raise ActionOrderError(action.context_id, action.timestamp, last)

            in_context = self._bind(action)
            self._accepted.add(action)
            self._last_timestamp[action.context_id] = action.timestamp
            self._actions.append(action)
            self._in_flight.append(in_flight)
            if action.kind == ActionKind.CLOSED:
                self._closed_contexts.add(action.context_id)

            logger.debug(
                "アクションを配送します: #%d %s (%s)",
                len(self._actions), action.kind.value, in_context.page_alias,
            )
            return self._emit(
                "action",
                lambda g: g.generate_action(in_context, in_flight),
                action,
            )

    def stop(self, storage_state_path: Optional[str] = None) -> list[Emission]:
        """セッションを終了し、全生成器のフッターを出力して出力先を閉じる。

        状態を先に stopped にするため、書き込み失敗時にもフッターが
        二重に出力されることはない。

        Args:
            storage_state_path: 指定時はストレージ状態の保存コードを出力する

        Raises:
            LifecycleError: セッションが記録中でない場合
            SinkWriteError: 出力先への書き込み・クローズに失敗した場合
        """
        with self._lock:
            if self._state != SessionState.RECORDING:
                raise LifecycleError("stop", self._state.value)
            self._state = SessionState.STOPPED
            logger.info("記録を終了しました: アクション %d 件", len(self._actions))

            try:
                emissions = self._emit(
                    "footer", lambda g: g.generate_footer(storage_state_path),
                )
            except SinkWriteError as exc:
                # クローズの失敗はフッターの書き込み失敗にまとめて報告する
                close_failures = self._close_sinks()
                if close_failures:
                    raise SinkWriteError(
                        exc.failures + close_failures, exc.emissions,
                    ) from exc
                raise

            close_failures = self._close_sinks()
            if close_failures:
                raise SinkWriteError(close_failures, emissions)
            return emissions

    # ----- 内部処理 -----

    def _bind(self, action: Action) -> ActionInContext:
        """アクションにページ変数名などの名前情報を割り当てる。"""
        context_id = action.context_id
        opens_page = False
        if context_id not in self._page_aliases:
            if not self._page_aliases:
                # 最初のコンテキストはヘッダーで開いた page に対応する
                self._page_aliases[context_id] = "page"
            else:
                self._page_aliases[context_id] = self._next_page_alias()
                opens_page = True
        announced = context_id in self._announced

        popup_alias = None
        popup = action.signal("popup")
        if popup is not None:
            if popup.context_id in self._page_aliases:
                logger.warning(
                    "既知のコンテキストが popup として通知されました: %s",
                    popup.context_id,
                )
            popup_alias = self._next_page_alias()
            self._page_aliases[popup.context_id] = popup_alias
            self._announced.add(popup.context_id)
            self._closed_contexts.discard(popup.context_id)

        download_alias = None
        if action.signal("download") is not None:
            download_alias = (
                "download" if self._download_count == 0
                else f"download{self._download_count}"
            )
            self._download_count += 1

        return ActionInContext(
            action=action,
            page_alias=self._page_aliases[context_id],
            opens_page=opens_page,
            announced=announced,
            popup_alias=popup_alias,
            download_alias=download_alias,
        )

    def _next_page_alias(self) -> str:
        self._page_count += 1
        return f"page{self._page_count}"

    def _emit(
        self,
        stage: str,
        render: Callable[[LanguageGenerator], str],
        action: Optional[Action] = None,
    ) -> list[Emission]:
        """全生成器で描画し、各出力先へ書き込む。

        生成器の例外はその生成器だけの診断情報として記録し、残りの生成器の
        処理を続ける。書き込み失敗は全出力先を試した後にまとめて送出する。
        """
        emissions: list[Emission] = []
        failures: list[tuple[OutputSink, BaseException]] = []

        for channel in self._channels:
            try:
                text = render(channel.generator)
            except Exception as exc:
                diagnostic = GeneratorDiagnostic(
                    generator=channel.name, stage=stage, error=exc, action=action,
                )
                self._diagnostics.append(diagnostic)
                logger.warning("%s", diagnostic.message)
                emissions.append(Emission(channel.name, diagnostic=diagnostic))
                continue

            for sink in channel.sinks:
                try:
                    sink.write(text)
                except Exception as exc:
                    logger.error(
                        "出力先への書き込みに失敗しました: %s (%s)", channel.name, exc,
                    )
                    failures.append((sink, exc))
            emissions.append(Emission(channel.name, text=text))

        if failures:
            raise SinkWriteError(failures, emissions)
        return emissions

    def _close_sinks(self) -> list[tuple[OutputSink, BaseException]]:
        """全出力先を 1 回ずつ閉じ、失敗した (出力先, 例外) を返す。"""
        failures: list[tuple[OutputSink, BaseException]] = []
        closed: set[int] = set()
        for channel in self._channels:
            for sink in channel.sinks:
                if id(sink) in closed:
                    continue
                closed.add(id(sink))
                try:
                    sink.close()
                except Exception as exc:
                    logger.error("出力先のクローズに失敗しました: %s", exc)
                    failures.append((sink, exc))
        return failures
