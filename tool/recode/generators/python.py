"""
Python 生成器 — Playwright for Python のスクリプトを出力する

同期 API（sync_playwright）と非同期 API（async_playwright）の両方に対応する。
出力は `def run(playwright)` 関数の本体にアクション文を追記していく形式で、
フッターで関数を閉じて実行ブロックを出力する。
"""

from __future__ import annotations

from typing import Any, Optional

from ..actions import ActionKind
from ..config import ContextConfig, LaunchConfig
from ..errors import UnsupportedActionError
from .base import (
    SEPARATOR,
    ActionInContext,
    HighlighterType,
    SignalSet,
    camel_to_snake,
    escape_chars,
    is_blank_url,
    one_line,
)

_INDENT = "    "

# エディタ等で改行として扱われる文字
_LINE_BREAKS = frozenset({"\x85", "\u2028", "\u2029"})


def _escape_code_point(cp: int) -> str:
    return f"\\x{cp:02x}" if cp < 0x100 else f"\\u{cp:04x}"


def quote(value: str) -> str:
    """Python の文字列リテラル（ダブルクォート）に変換する。"""
    return '"' + escape_chars(value, '"', _escape_code_point, _LINE_BREAKS) + '"'


def format_value(value: Any) -> str:
    """オプション値を Python のリテラル表記に変換する。"""
    if value is None:
        return "None"
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return quote(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_value(v) for v in value) + "]"
    if isinstance(value, dict):
        items = ", ".join(
            f"{quote(str(k))}: {format_value(v)}" for k, v in value.items()
        )
        return "{" + items + "}"
    raise TypeError(f"出力できない値の型です: {type(value).__name__}")


def _format_kwargs(options: dict[str, Any]) -> str:
    return ", ".join(
        f"{camel_to_snake(key)}={format_value(value)}"
        for key, value in options.items()
    )


def _indent(lines: list[str]) -> list[str]:
    return [_INDENT + line for line in lines]


class PythonLanguageGenerator:
    """Playwright for Python のコード生成器。

    使用例::

        generator = PythonLanguageGenerator(is_async=False)
        header = generator.generate_header("chromium", LaunchConfig(), ContextConfig())
    """

    def __init__(self, is_async: bool = False) -> None:
        """生成器を初期化する。

        Args:
            is_async: True で async_playwright 形式のコードを出力する
        """
        self._is_async = is_async
        self._await = "await " if is_async else ""
        self._with = "async with " if is_async else "with "

    @property
    def name(self) -> str:
        return "python-async" if self._is_async else "python"

    def highlighter_type(self) -> HighlighterType:
        return HighlighterType.PYTHON

    # ----- ヘッダー / フッター -----

    def generate_header(
        self,
        context_label: str,
        launch_config: LaunchConfig,
        context_config: ContextConfig,
        device_label: Optional[str] = None,
    ) -> str:
        aw = self._await
        if self._is_async:
            lines = [
                "import asyncio",
                "",
                "from playwright.async_api import Playwright, async_playwright",
                "",
                "",
                "async def run(playwright: Playwright) -> None:",
            ]
        else:
            lines = [
                "from playwright.sync_api import Playwright, sync_playwright",
                "",
                "",
                "def run(playwright: Playwright) -> None:",
            ]

        launch_args = _format_kwargs(launch_config.options())
        context_args = self._context_args(context_config, device_label)
        lines += _indent([
            f"browser = {aw}playwright.{context_label}.launch({launch_args})",
            f"context = {aw}browser.new_context({context_args})",
            f"page = {aw}context.new_page()",
        ])
        return "\n".join(lines) + "\n"

    def _context_args(
        self, context_config: ContextConfig, device_label: Optional[str],
    ) -> str:
        options = context_config.options()
        if device_label is None:
            return _format_kwargs(options)

        # デバイス定義とキーが重なっても TypeError にならないよう辞書を合成する
        device = f"playwright.devices[{quote(device_label)}]"
        if not options:
            return f"**{device}"
        overrides = ", ".join(
            f"{quote(camel_to_snake(key))}: {format_value(value)}"
            for key, value in options.items()
        )
        return f"**{{**{device}, {overrides}}}"

    def generate_footer(self, storage_state_path: Optional[str] = None) -> str:
        aw = self._await
        lines = ["", f"# {SEPARATOR}"]
        if storage_state_path:
            lines.append(
                f"{aw}context.storage_state(path={quote(storage_state_path)})"
            )
        lines += [f"{aw}context.close()", f"{aw}browser.close()"]
        body = "\n".join(_INDENT + line if line else "" for line in lines)

        if self._is_async:
            tail = (
                "\n\n\nasync def main() -> None:\n"
                "    async with async_playwright() as playwright:\n"
                "        await run(playwright)\n"
                "\n\n"
                "asyncio.run(main())\n"
            )
        else:
            tail = (
                "\n\n\nwith sync_playwright() as playwright:\n"
                "    run(playwright)\n"
            )
        return body + tail

    # ----- アクション -----

    def generate_action(self, action: ActionInContext, in_flight: bool) -> str:
        act = action.action
        page = action.page_alias
        aw = self._await
        signals = SignalSet.of(act)

        lines = [f"# {one_line(act.title)}"]
        if action.opens_page:
            lines.append(f"{page} = {aw}context.new_page()")
        if signals.dialog is not None or act.kind == ActionKind.DIALOG_APPEARED:
            lines.append(f'{page}.once("dialog", lambda dialog: dialog.dismiss())')

        body = self._action_lines(action)
        after: list[str] = []

        if signals.navigation is not None and not in_flight:
            body = [f"{self._with}{page}.expect_navigation():", *_indent(body)]
        if signals.download is not None:
            body = [
                f"{self._with}{page}.expect_download() as download_info:",
                *_indent(body),
            ]
            download_alias = action.download_alias or "download"
            after.append(f"{download_alias} = {aw}download_info.value")
        if signals.popup is not None:
            body = [
                f"{self._with}{page}.expect_popup() as popup_info:",
                *_indent(body),
            ]
            popup_alias = action.popup_alias or "popup"
            after.insert(0, f"{popup_alias} = {aw}popup_info.value")

        lines += body + after
        if signals.navigation is not None and in_flight:
            lines.append(
                f"# assert {page}.url == {one_line(quote(signals.navigation.url))}"
            )
        return "\n" + "\n".join(_INDENT + line for line in lines) + "\n"

    def _subject(self, action: ActionInContext) -> str:
        frame = action.action.frame
        page = action.page_alias
        if frame.is_main_frame:
            return page
        if frame.name:
            return f"{page}.frame(name={quote(frame.name)})"
        if frame.url:
            return f"{page}.frame(url={quote(frame.url)})"
        return page

    def _action_lines(self, action: ActionInContext) -> list[str]:
        act = action.action
        page = action.page_alias
        aw = self._await
        subject = self._subject(action)
        kind = act.kind
        selector = quote(act.selector or "")

        if kind == ActionKind.NAVIGATE:
            return [f"{aw}{subject}.goto({quote(act.value or '')})"]

        if kind == ActionKind.CLICK:
            method = "dblclick" if act.click_count == 2 else "click"
            options: dict[str, Any] = {}
            if act.button != "left":
                options["button"] = act.button
            if act.modifiers:
                options["modifiers"] = list(act.modifiers)
            if act.click_count > 2:
                options["clickCount"] = act.click_count
            args = selector
            if options:
                args += ", " + _format_kwargs(options)
            return [f"{aw}{subject}.{method}({args})"]

        if kind == ActionKind.FILL:
            return [f"{aw}{subject}.fill({selector}, {quote(act.value or '')})"]

        if kind == ActionKind.CHECK:
            return [f"{aw}{subject}.check({selector})"]

        if kind == ActionKind.UNCHECK:
            return [f"{aw}{subject}.uncheck({selector})"]

        if kind == ActionKind.SELECT:
            options_ = act.selected_options
            value = format_value(options_[0] if len(options_) == 1 else list(options_))
            return [f"{aw}{subject}.select_option({selector}, {value})"]

        if kind == ActionKind.PRESS_KEY:
            return [f"{aw}{subject}.press({selector}, {quote(act.shortcut)})"]

        if kind == ActionKind.SET_VIEWPORT_OR_STORAGE:
            size = act.viewport_size
            if size is not None:
                viewport = format_value({"width": size[0], "height": size[1]})
                return [f"{aw}{page}.set_viewport_size({viewport})"]
            return [f"{aw}context.storage_state(path={quote(act.value or '')})"]

        if kind == ActionKind.WAIT_FOR_NAVIGATION:
            if act.value:
                return [f"{aw}{page}.wait_for_url({quote(act.value)})"]
            return [f"{aw}{page}.wait_for_load_state()"]

        if kind == ActionKind.POPUP_OPENED:
            if action.announced:
                return [f"{aw}{page}.wait_for_load_state()"]
            if not is_blank_url(act.value):
                return [f"{aw}{page}.goto({quote(act.value or '')})"]
            return []

        if kind in (ActionKind.DOWNLOAD_STARTED, ActionKind.DIALOG_APPEARED):
            # 見出しコメントとダイアログハンドラのみを出力する
            return []

        if kind == ActionKind.CLOSED:
            return [f"{aw}{page}.close()"]

        raise UnsupportedActionError(self.name, kind.value)
