"""
CLI エントリポイント — Typer ベースのコマンドラインインターフェース

recode コマンドとして以下のサブコマンドを提供する:
  - targets: 登録済みの出力言語一覧
  - render: 保存済みアクションログを指定言語のコードに再出力
  - validate: アクションログのスキーマ検証

ブラウザは起動しない。ライブ記録は上流から ActionPump 経由で行う。
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from .action_log import ActionLog, load_log, render_log
from .config import load_settings_from_env, lookup_browser, parse_viewport
from .errors import RecodeError
from .generators.registry import create_default_registry
from .sinks import FileSink, MemorySink, OutputSink, StreamSink

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Typer アプリ定義
# ---------------------------------------------------------------------------

app = typer.Typer(
    help=(
        "recode — 記録したブラウザ操作を Playwright スクリプトに変換するツール\n\n"
        "基本の流れ:\n"
        "  1. recode targets                 出力できる言語を確認\n"
        "  2. recode render session.yaml -t python  ログをコードに変換\n\n"
        "詳しくは各コマンドに --help を付けてください。"
    ),
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# targets コマンド
# ---------------------------------------------------------------------------

@app.command()
def targets() -> None:
    """登録済みの出力言語の一覧を表示する。"""
    registry = create_default_registry()
    infos = registry.list_all()

    for info in infos:
        typer.echo(f"  {info.name:15s} {info.description}")

    typer.echo(f"\n合計: {len(infos)} 言語")


# ---------------------------------------------------------------------------
# render コマンド
# ---------------------------------------------------------------------------

@app.command()
def render(
    log_file: Path = typer.Argument(..., help="再出力するアクションログ（YAML）"),
    target: Optional[list[str]] = typer.Option(
        None, "--target", "-t",
        help="出力言語（複数指定可。省略時は RECODE_TARGETS または python）",
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o",
        help="出力先ファイル（省略時は RECODE_OUTPUT または標準出力）",
    ),
    save_storage: Optional[str] = typer.Option(
        None, "--save-storage",
        help="終了時にストレージ状態を保存するパス（生成コードに出力）",
    ),
    browser: Optional[str] = typer.Option(
        None, "--browser", "-b",
        help="ブラウザ種別を上書き（chromium / firefox / webkit。省略時は RECODE_BROWSER またはログの値）",
    ),
    viewport: Optional[str] = typer.Option(
        None, "--viewport",
        help="ビューポートを上書き（例: 1280,720。省略時は RECODE_VIEWPORT またはログの値）",
    ),
) -> None:
    """保存済みのアクションログを指定言語の Playwright スクリプトに変換する。

    出力言語を複数指定した場合は、言語ごとに区切って標準出力に表示します。
    """
    settings = load_settings_from_env()
    names = list(target) if target else settings.targets
    output = output or (Path(settings.output) if settings.output else None)
    save_storage = save_storage or settings.save_storage
    browser = browser or settings.browser
    viewport = viewport or settings.viewport

    if output is not None and len(names) > 1:
        typer.echo("エラー: --output は出力言語が 1 つの場合のみ指定できます", err=True)
        raise typer.Exit(code=1)

    buffers: dict[str, MemorySink] = {}

    def sink_factory(name: str) -> list[OutputSink]:
        if output is not None:
            return [FileSink(output)]
        if len(names) == 1:
            return [StreamSink(sys.stdout)]
        buffers[name] = MemorySink()
        return [buffers[name]]

    try:
        log = _override_log(load_log(log_file), browser, viewport)
        controller = render_log(
            log, create_default_registry(), names, sink_factory, save_storage,
        )
    except (RecodeError, FileNotFoundError, OSError) as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)

    for name, buffer in buffers.items():
        typer.echo(f"===== {name} =====")
        typer.echo(buffer.text)

    if output is not None:
        typer.echo(f"出力完了: {output}", err=True)

    diagnostics = controller.diagnostics
    if diagnostics:
        for diagnostic in diagnostics:
            typer.echo(f"✗ {diagnostic.message}", err=True)
        raise typer.Exit(code=1)


def _override_log(
    log: ActionLog, browser: Optional[str], viewport: Optional[str],
) -> ActionLog:
    """ブラウザ種別・ビューポートの指定があればログの設定を置き換える。"""
    update: dict[str, object] = {}
    if browser:
        update["context_label"] = lookup_browser(browser)
    if viewport:
        update["context"] = log.context.model_copy(
            update={"viewport": parse_viewport(viewport)},
        )
    if update:
        logger.info("ログの設定を上書きします: %s", ", ".join(update))
        return log.model_copy(update=update)
    return log


# ---------------------------------------------------------------------------
# validate コマンド
# ---------------------------------------------------------------------------

@app.command()
def validate(
    log_file: Path = typer.Argument(..., help="検証するアクションログ（YAML）"),
) -> None:
    """アクションログのスキーマ検証を行う。"""
    try:
        log = load_log(log_file)
    except (RecodeError, FileNotFoundError) as exc:
        typer.echo(f"✗ {log_file}: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"✓ {log_file}: スキーマ検証 OK ({len(log.entries)} アクション)")


if __name__ == "__main__":
    app()
