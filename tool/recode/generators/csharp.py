"""
C# 生成器 — Playwright for .NET (Microsoft.Playwright) のコードを出力する

`Program.Main` の本体にアクション文を追記していく形式。
popup / download / navigation を伴う操作は RunAndWaitFor...Async で包む。
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

_INDENT = "    "
_BODY_INDENT = _INDENT * 2

# 通常の文字列リテラル中に置けない改行文字
_NEWLINE_CHARS = frozenset({"\x85", "\u2028", "\u2029"})

# オプション名 → (プロパティ名, オブジェクト値の型名)
_OPTION_NAMES: dict[str, tuple[str, Optional[str]]] = {
    "viewport": ("ViewportSize", "ViewportSize"),
    "geolocation": ("Geolocation", "Geolocation"),
    "proxy": ("Proxy", "Proxy"),
}

_BUTTONS = {"middle": "MouseButton.Middle", "right": "MouseButton.Right"}


def quote(value: str) -> str:
    """C# の通常文字列リテラルに変換する。"""
    return '"' + escape_chars(
        value, '"', lambda cp: f"\\u{cp:04x}", _NEWLINE_CHARS,
    ) + '"'


def _pascal(name: str) -> str:
    return name[:1].upper() + name[1:]


def format_value(value: Any, type_name: Optional[str] = None) -> str:
    """オプション値を C# の式に変換する。"""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return f"{value!r}F"
    if isinstance(value, str):
        return quote(value)
    if isinstance(value, (list, tuple)):
        return "new[] { " + ", ".join(format_value(v) for v in value) + " }"
    if isinstance(value, dict):
        return format_initializer(type_name or "object", value)
    raise TypeError(f"出力できない値の型です: {type(value).__name__}")


def format_initializer(type_name: str, options: dict[str, Any]) -> str:
    """オブジェクト初期化子 `new T { A = ..., B = ... }` を生成する。"""
    if not options:
        return f"new {type_name}()"
    items = []
    for key, value in options.items():
        prop, nested_type = _OPTION_NAMES.get(key, (_pascal(key), None))
        if key == "colorScheme":
            items.append(f"{prop} = ColorScheme.{_pascal(value)}")
        else:
            items.append(f"{prop} = {format_value(value, nested_type)}")
    return f"new {type_name} {{ " + ", ".join(items) + " }"


def _indent(lines: list[str]) -> list[str]:
    return [_INDENT + line for line in lines]


def _wrap(call: str, body: list[str], result: Optional[str] = None) -> list[str]:
    """body を RunAndWaitFor...Async のラムダで包む。"""
    left = f"var {result} = " if result else ""
    return [
        f"{left}await {call}(async () =>",
        "{",
        *_indent(body),
        "});",
    ]


class CSharpLanguageGenerator:
    """Playwright for .NET のコード生成器。"""

    name = "csharp"

    def highlighter_type(self) -> HighlighterType:
        return HighlighterType.CSHARP

    # ----- ヘッダー / フッター -----

    def generate_header(
        self,
        context_label: str,
        launch_config: LaunchConfig,
        context_config: ContextConfig,
        device_label: Optional[str] = None,
    ) -> str:
        launch_options = format_initializer(
            "BrowserTypeLaunchOptions", launch_config.options(),
        )
        body = [
            "using var playwright = await Playwright.CreateAsync();",
            "await using var browser = await playwright."
            f"{_pascal(context_label)}.LaunchAsync({launch_options});",
            "var context = await browser.NewContextAsync("
            f"{self._context_options(context_config, device_label)});",
            "var page = await context.NewPageAsync();",
        ]
        lines = [
            "using Microsoft.Playwright;",
            "using System;",
            "using System.Threading.Tasks;",
            "",
            "class Program",
            "{",
            _INDENT + "public static async Task Main()",
            _INDENT + "{",
            *(_BODY_INDENT + line for line in body),
        ]
        return "\n".join(lines) + "\n"

    def _context_options(
        self, context_config: ContextConfig, device_label: Optional[str],
    ) -> str:
        options = context_config.options()
        if device_label is None:
            if not options:
                return ""
            return format_initializer("BrowserNewContextOptions", options)
        type_name = (
            f"BrowserNewContextOptions(playwright.Devices[{quote(device_label)}])"
        )
        if not options:
            return f"new {type_name}"
        return format_initializer(type_name, options)

    def generate_footer(self, storage_state_path: Optional[str] = None) -> str:
        lines = ["", f"// {SEPARATOR}"]
        if storage_state_path:
            options = format_initializer(
                "BrowserContextStorageStateOptions", {"path": storage_state_path},
            )
            lines.append(f"await context.StorageStateAsync({options});")
        lines.append("await context.CloseAsync();")
        body = "\n".join(_BODY_INDENT + line if line else "" for line in lines)
        return body + "\n" + _INDENT + "}\n}\n"

    # ----- アクション -----

    def generate_action(self, action: ActionInContext, in_flight: bool) -> str:
        act = action.action
        page = action.page_alias
        signals = SignalSet.of(act)

        lines = [f"// {one_line(act.title)}"]
        if action.opens_page:
            lines.append(f"var {page} = await context.NewPageAsync();")
        if signals.dialog is not None or act.kind == ActionKind.DIALOG_APPEARED:
            # ブロックで囲み、同じメソッド内での変数名の重複を避ける
            lines += [
                "{",
                *_indent([
                    "EventHandler<IDialog>? dialogHandler = null;",
                    "dialogHandler = (_, dialog) =>",
                    "{",
                    *_indent([
                        f"{page}.Dialog -= dialogHandler;",
                        'Console.WriteLine($"Dialog message: {dialog.Message}");',
                        "_ = dialog.DismissAsync();",
                    ]),
                    "};",
                    f"{page}.Dialog += dialogHandler;",
                ]),
                "}",
            ]

        body = [f"await {call};" for call in self._action_calls(action)]
        if body:
            if signals.navigation is not None and not in_flight:
                body = _wrap(f"{page}.RunAndWaitForNavigationAsync", body)
            if signals.download is not None:
                body = _wrap(
                    f"{page}.RunAndWaitForDownloadAsync",
                    body,
                    action.download_alias or "download",
                )
            if signals.popup is not None:
                body = _wrap(
                    f"{page}.RunAndWaitForPopupAsync",
                    body,
                    action.popup_alias or "popup",
                )
        lines += body

        if signals.navigation is not None and in_flight:
            lines.append(
                f"// Assert.AreEqual({one_line(quote(signals.navigation.url))}, "
                f"{page}.Url);"
            )
        return "\n" + "\n".join(_BODY_INDENT + line for line in lines) + "\n"

    def _subject(self, action: ActionInContext) -> tuple[str, str]:
        """呼び出し対象の式と、オプションクラス名の接頭辞を返す。"""
        frame = action.action.frame
        page = action.page_alias
        if frame.is_main_frame:
            return page, "Page"
        if frame.name:
            return f"{page}.Frame({quote(frame.name)})", "Frame"
        if frame.url:
            return f"{page}.FrameByUrl({quote(frame.url)})", "Frame"
        return page, "Page"

    def _action_calls(self, action: ActionInContext) -> list[str]:
        """await 対象の呼び出し式（末尾のセミコロンなし）を返す。"""
        act = action.action
        page = action.page_alias
        subject, prefix = self._subject(action)
        kind = act.kind
        selector = quote(act.selector or "")

        if kind == ActionKind.NAVIGATE:
            return [f"{subject}.GotoAsync({quote(act.value or '')})"]

        if kind == ActionKind.CLICK:
            method = "DblClick" if act.click_count == 2 else "Click"
            props: list[str] = []
            if act.button != "left":
                props.append(f"Button = {_BUTTONS[act.button]}")
            if act.modifiers:
                modifiers = ", ".join(f"KeyboardModifier.{m}" for m in act.modifiers)
                props.append(f"Modifiers = new[] {{ {modifiers} }}")
            if act.click_count > 2:
                props.append(f"ClickCount = {act.click_count}")
            args = selector
            if props:
                args += f", new {prefix}{method}Options {{ " + ", ".join(props) + " }"
            return [f"{subject}.{method}Async({args})"]

        if kind == ActionKind.FILL:
            return [f"{subject}.FillAsync({selector}, {quote(act.value or '')})"]

        if kind == ActionKind.CHECK:
            return [f"{subject}.CheckAsync({selector})"]

        if kind == ActionKind.UNCHECK:
            return [f"{subject}.UncheckAsync({selector})"]

        if kind == ActionKind.SELECT:
            values = act.selected_options
            value = format_value(values[0] if len(values) == 1 else list(values))
            return [f"{subject}.SelectOptionAsync({selector}, {value})"]

        if kind == ActionKind.PRESS_KEY:
            return [f"{subject}.PressAsync({selector}, {quote(act.shortcut)})"]

        if kind == ActionKind.SET_VIEWPORT_OR_STORAGE:
            size = act.viewport_size
            if size is not None:
                return [f"{page}.SetViewportSizeAsync({size[0]}, {size[1]})"]
            options = format_initializer(
                "BrowserContextStorageStateOptions", {"path": act.value},
            )
            return [f"context.StorageStateAsync({options})"]

        if kind == ActionKind.WAIT_FOR_NAVIGATION:
            if act.value:
                return [f"{page}.WaitForURLAsync({quote(act.value)})"]
            return [f"{page}.WaitForLoadStateAsync()"]

        if kind == ActionKind.POPUP_OPENED:
            if action.announced:
                return [f"{page}.WaitForLoadStateAsync()"]
            if not is_blank_url(act.value):
                return [f"{page}.GotoAsync({quote(act.value or '')})"]
            return []

        if kind in (ActionKind.DOWNLOAD_STARTED, ActionKind.DIALOG_APPEARED):
            return []

        if kind == ActionKind.CLOSED:
            return [f"{page}.CloseAsync()"]

        raise UnsupportedActionError(self.name, kind.value)
