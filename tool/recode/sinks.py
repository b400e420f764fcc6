"""
出力先 — 生成されたコード断片を順に受け取る書き込み先

断片（ヘッダー / アクション / フッター）は呼び出し順に 1 回ずつ書き込まれ、
再送や取り消しは行わない。書き込み失敗は例外として呼び出し元に伝える。

主な構成:
  - OutputSink Protocol: write() / close()
  - StreamSink: テキストストリーム（標準出力等）
  - FileSink: UTF-8 ファイル
  - MemorySink: メモリ上の断片リスト
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class OutputSink(Protocol):
    """コード断片の書き込み先の共通インターフェース。"""

    def write(self, text: str) -> None:
        """断片を 1 つ書き込む。失敗時は OSError 等を送出する。"""
        ...

    def close(self) -> None:
        """出力先を閉じる。"""
        ...


class StreamSink:
    """テキストストリームへの出力先。

    断片ごとに flush し、端末にそのまま逐次表示されるようにする。
    ストリーム自体は呼び出し元の所有物であり close() では閉じない。
    """

    def __init__(self, stream: IO[str]) -> None:
        self._stream = stream

    def write(self, text: str) -> None:
        self._stream.write(text)
        self._stream.flush()

    def close(self) -> None:
        self._stream.flush()


class FileSink:
    """UTF-8 ファイルへの出力先。

    最初の書き込み時にファイルを開く（親ディレクトリも作成する）。
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._file: Optional[IO[str]] = None

    def write(self, text: str) -> None:
        if self._file is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.path, "w", encoding="utf-8", newline="\n")
            logger.info("出力ファイルを開きました: %s", self.path)
        self._file.write(text)
        self._file.flush()

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            logger.info("出力ファイルを閉じました: %s", self.path)


class MemorySink:
    """メモリ上に断片を蓄積する出力先。"""

    def __init__(self) -> None:
        self.fragments: list[str] = []
        self.closed = False

    def write(self, text: str) -> None:
        self.fragments.append(text)

    def close(self) -> None:
        self.closed = True

    @property
    def text(self) -> str:
        """書き込まれた全断片を連結して返す。"""
        return "".join(self.fragments)
