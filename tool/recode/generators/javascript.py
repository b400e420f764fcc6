"""
JavaScript 生成器 — Playwright for Node.js のスクリプトを出力する

async 即時関数の中に await 文を追記していく形式。
popup / download / navigation を伴う操作は Promise.all で待機と同時に実行する。
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
    escape_chars,
    is_blank_url,
    one_line,
)

_INDENT = "  "

# JavaScript の行終端子として扱われる文字
_LINE_TERMINATORS = frozenset({"\u2028", "\u2029"})


def quote(value: str) -> str:
    """JavaScript の文字列リテラル（シングルクォート）に変換する。"""
    return "'" + escape_chars(
        value, "'", lambda cp: f"\\u{cp:04x}", _LINE_TERMINATORS,
    ) + "'"


def format_object(value: Any) -> str:
    """オプション値を JavaScript のリテラル表記に変換する。"""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return quote(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_object(v) for v in value) + "]"
    if isinstance(value, dict):
        if not value:
            return "{}"
        items = ", ".join(f"{k}: {format_object(v)}" for k, v in value.items())
        return "{ " + items + " }"
    raise TypeError(f"出力できない値の型です: {type(value).__name__}")


def _indent(lines: list[str]) -> list[str]:
    return [_INDENT + line for line in lines]


class JavaScriptLanguageGenerator:
    """Playwright for Node.js のコード生成器。"""

    name = "javascript"

    def highlighter_type(self) -> HighlighterType:
        return HighlighterType.JAVASCRIPT

    # ----- ヘッダー / フッター -----

    def generate_header(
        self,
        context_label: str,
        launch_config: LaunchConfig,
        context_config: ContextConfig,
        device_label: Optional[str] = None,
    ) -> str:
        imports = f"{context_label}, devices" if device_label else context_label
        launch_options = format_object(launch_config.options())
        lines = [
            f"const {{ {imports} }} = require('playwright');",
            "",
            "(async () => {",
            *_indent([
                f"const browser = await {context_label}.launch({launch_options});",
                "const context = await browser.newContext("
                f"{self._context_options(context_config, device_label)});",
                "const page = await context.newPage();",
            ]),
        ]
        return "\n".join(lines) + "\n"

    def _context_options(
        self, context_config: ContextConfig, device_label: Optional[str],
    ) -> str:
        options = context_config.options()
        if device_label is None:
            return format_object(options) if options else ""
        items = [f"...devices[{quote(device_label)}]"]
        items += [f"{k}: {format_object(v)}" for k, v in options.items()]
        return "{ " + ", ".join(items) + " }"

    def generate_footer(self, storage_state_path: Optional[str] = None) -> str:
        lines = ["", f"// {SEPARATOR}"]
        if storage_state_path:
            lines.append(
                "await context.storageState("
                f"{format_object({'path': storage_state_path})});"
            )
        lines += ["await context.close();", "await browser.close();"]
        body = "\n".join(_INDENT + line if line else "" for line in lines)
        return body + "\n})();\n"

    # ----- アクション -----

    def generate_action(self, action: ActionInContext, in_flight: bool) -> str:
        act = action.action
        page = action.page_alias
        signals = SignalSet.of(act)

        lines = [f"// {one_line(act.title)}"]
        if action.opens_page:
            lines.append(f"const {page} = await context.newPage();")
        if signals.dialog is not None or act.kind == ActionKind.DIALOG_APPEARED:
            lines += [
                f"{page}.once('dialog', dialog => {{",
                *_indent([
                    "console.log(`Dialog message: ${dialog.message()}`);",
                    "dialog.dismiss().catch(() => {});",
                ]),
                "});",
            ]

        calls = self._action_calls(action)
        wait_for_navigation = signals.navigation is not None and not in_flight

        # 待機を伴う操作は Promise.all で待機と操作を同時に開始する
        waits: list[str] = []
        bindings: list[str] = []
        if signals.popup is not None:
            waits.append(f"{page}.waitForEvent('popup')")
            bindings.append(action.popup_alias or "popup")
        if signals.download is not None:
            waits.append(f"{page}.waitForEvent('download')")
            bindings.append(action.download_alias or "download")
        if wait_for_navigation:
            waits.append(f"{page}.waitForNavigation()")

        if waits and calls:
            left = f"const [{', '.join(bindings)}] = " if bindings else ""
            entries = [*waits, calls[0]]
            lines.append(f"{left}await Promise.all([")
            lines += _indent([entry + "," for entry in entries[:-1]] + [entries[-1]])
            lines.append("]);")
            lines += [f"await {call};" for call in calls[1:]]
        else:
            lines += [f"await {call};" for call in calls]

        if signals.navigation is not None and in_flight:
            lines.append(
                f"// assert.equal({page}.url(), "
                f"{one_line(quote(signals.navigation.url))});"
            )
        return "\n" + "\n".join(_INDENT + line for line in lines) + "\n"

    def _subject(self, action: ActionInContext) -> str:
        frame = action.action.frame
        page = action.page_alias
        if frame.is_main_frame:
            return page
        if frame.name:
            return f"{page}.frame({format_object({'name': frame.name})})"
        if frame.url:
            return f"{page}.frame({format_object({'url': frame.url})})"
        return page

    def _action_calls(self, action: ActionInContext) -> list[str]:
        """await 対象の呼び出し式（末尾のセミコロンなし）を返す。"""
        act = action.action
        page = action.page_alias
        subject = self._subject(action)
        kind = act.kind
        selector = quote(act.selector or "")

        if kind == ActionKind.NAVIGATE:
            return [f"{subject}.goto({quote(act.value or '')})"]

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
                args += ", " + format_object(options)
            return [f"{subject}.{method}({args})"]

        if kind == ActionKind.FILL:
            return [f"{subject}.fill({selector}, {quote(act.value or '')})"]

        if kind == ActionKind.CHECK:
            return [f"{subject}.check({selector})"]

        if kind == ActionKind.UNCHECK:
            return [f"{subject}.uncheck({selector})"]

        if kind == ActionKind.SELECT:
            values = act.selected_options
            value = format_object(values[0] if len(values) == 1 else list(values))
            return [f"{subject}.selectOption({selector}, {value})"]

        if kind == ActionKind.PRESS_KEY:
            return [f"{subject}.press({selector}, {quote(act.shortcut)})"]

        if kind == ActionKind.SET_VIEWPORT_OR_STORAGE:
            size = act.viewport_size
            if size is not None:
                viewport = format_object({"width": size[0], "height": size[1]})
                return [f"{page}.setViewportSize({viewport})"]
            return [f"context.storageState({format_object({'path': act.value})})"]

        if kind == ActionKind.WAIT_FOR_NAVIGATION:
            if act.value:
                return [f"{page}.waitForURL({quote(act.value)})"]
            return [f"{page}.waitForLoadState()"]

        if kind == ActionKind.POPUP_OPENED:
            if action.announced:
                return [f"{page}.waitForLoadState()"]
            if not is_blank_url(act.value):
                return [f"{page}.goto({quote(act.value or '')})"]
            return []

        if kind in (ActionKind.DOWNLOAD_STARTED, ActionKind.DIALOG_APPEARED):
            # 見出しコメントとダイアログハンドラのみを出力する
            return []

        if kind == ActionKind.CLOSED:
            return [f"{page}.close()"]

        raise UnsupportedActionError(self.name, kind.value)
