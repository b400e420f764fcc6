"""
ActionPump — 上流の分類器と RecorderController をつなぐキュー

上流（ブラウザイベントの分類器）は submit() でアクションを投入し、
run() が唯一の消費者として到着順に controller.record() を呼び出す。
close() で終了マーカーを投入すると、フッターを出力して run() が終わる。

出力先への書き込み失敗（SinkWriteError）は errors に記録して消費を続ける。
アクションは書き込み前に受理済みのため、失敗しても記録からは欠落しない。
それ以外の例外やキャンセルで run() が終わった場合も、セッションが記録中であれば
フッターを出力し、以後の submit() は LifecycleError になる。
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from .actions import Action, ActionKind
from .controller import RecorderController, SessionState
from .errors import LifecycleError, SinkWriteError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Delivery:
    action: Action
    in_flight: bool


@dataclass(frozen=True)
class _Stop:
    storage_state_path: Optional[str]


_Item = Union[_Delivery, _Stop]


class ActionPump:
    """アクションのキューとその消費ループ。

    使用例::

        pump = ActionPump(controller, storage_state_path="auth.json")
        task = asyncio.create_task(pump.run())
        pump.submit(action)
        pump.close()
        await task
    """

    def __init__(
        self,
        controller: RecorderController,
        *,
        storage_state_path: Optional[str] = None,
        stop_when_all_closed: bool = True,
        on_error: Optional[Callable[[SinkWriteError], None]] = None,
    ) -> None:
        """キューを初期化する。

        Args:
            controller: 配送先のコントローラ（start() 済みであること）
            storage_state_path: 終了時のストレージ状態保存先
            stop_when_all_closed: 全コンテキストが閉じたら自動で終了するか
            on_error: 出力先への書き込み失敗ごとに呼ばれるコールバック
        """
        self._controller = controller
        self._storage_state_path = storage_state_path
        self._stop_when_all_closed = stop_when_all_closed
        self._on_error = on_error
        self._queue: asyncio.Queue[_Item] = asyncio.Queue()
        self._closing = False
        self.delivered = 0
        self.errors: list[SinkWriteError] = []

    @property
    def pending(self) -> int:
        """キューに残っている項目数を返す。"""
        return self._queue.qsize()

    @property
    def closed(self) -> bool:
        """submit() を受け付けなくなったかどうか。"""
        return self._closing

    def submit(self, action: Action, *, in_flight: bool = False) -> None:
        """アクションをキューに投入する。

        Raises:
            LifecycleError: close() 後、または run() の終了後に呼ばれた場合
        """
        if self._closing:
            raise LifecycleError("submit", "closing")
        self._queue.put_nowait(_Delivery(action, in_flight))

    def close(self, storage_state_path: Optional[str] = None) -> None:
        """終了マーカーを投入する。以後の submit() は失敗する。

        Args:
            storage_state_path: 指定時はコンストラクタの指定より優先する
        """
        if self._closing:
            raise LifecycleError("close", "closing")
        self._closing = True
        self._queue.put_nowait(_Stop(storage_state_path or self._storage_state_path))

    async def run(self) -> None:
        """キューを到着順に消費し、終了マーカーでセッションを終了する。

        Raises:
            ActionOrderError, LifecycleError: controller.record() が送出した場合
                （フッターを出力してから送出する）
        """
        try:
            while True:
                item = await self._queue.get()
                if isinstance(item, _Stop):
                    self._finish(item.storage_state_path)
                    return

                self._deliver(item)

                if (
                    self._stop_when_all_closed
                    and item.action.kind == ActionKind.CLOSED
                    and not self._controller.open_contexts
                ):
                    logger.info("全コンテキストが閉じられたため記録を終了します")
                    self._finish(self._storage_state_path)
                    return
        except asyncio.CancelledError:
            logger.info("記録ループがキャンセルされました")
            self._abort()
            raise
        except Exception:
            self._abort()
            raise
        finally:
            self._closing = True

    def _deliver(self, item: _Delivery) -> None:
        try:
            self._controller.record(item.action, in_flight=item.in_flight)
        except SinkWriteError as exc:
            self._report(exc)
        self.delivered += 1

    def _finish(self, storage_state_path: Optional[str]) -> None:
        self._closing = True
        discarded = self._queue.qsize()
        if discarded:
            logger.warning("終了後のアクション %d 件を破棄しました", discarded)
        try:
            self._controller.stop(storage_state_path)
        except SinkWriteError as exc:
            self._report(exc)

    def _abort(self) -> None:
        """消費ループが異常終了した場合の後始末。元の例外を優先する。"""
        self._closing = True
        if self._controller.state != SessionState.RECORDING:
            return
        try:
            self._controller.stop(self._storage_state_path)
        except SinkWriteError as exc:
            self._report(exc)

    def _report(self, exc: SinkWriteError) -> None:
        self.errors.append(exc)
        logger.error("出力先への書き込みに失敗しました: %s", exc)
        if self._on_error is not None:
            self._on_error(exc)
