"""
C# 生成器のユニットテスト

RunAndWaitFor...Async による待機、オプション初期化子、ヘッダー・フッターの出力を検証する。
"""

import re

import pytest

from recode.actions import DialogSignal, DownloadSignal, NavigationSignal, PopupSignal
from recode.config import ContextConfig, Geolocation, LaunchConfig, Viewport
from recode.generators.base import HighlighterType, LanguageGenerator
from recode.generators.csharp import (
    CSharpLanguageGenerator,
    format_initializer,
    format_value,
    quote,
)


@pytest.fixture
def generator() -> CSharpLanguageGenerator:
    return CSharpLanguageGenerator()


class TestCSharpLiterals:
    """quote() / format_value() / format_initializer() のテスト。"""

    def test_quote(self):
        assert quote('say "hi"') == '"say \\"hi\\""'
        assert quote("a\\b") == '"a\\\\b"'
        assert quote("\x85") == '"\\u0085"'
        assert quote("\x1b") == '"\\u001b"'

    def test_format_value(self):
        assert format_value(1.5) == "1.5F"
        assert format_value(3) == "3"
        assert format_value(["a", "b"]) == 'new[] { "a", "b" }'

    def test_format_initializer(self):
        assert format_initializer("X", {}) == "new X()"
        assert format_initializer(
            "BrowserNewContextOptions",
            {"viewport": {"width": 1, "height": 2}, "colorScheme": "dark"},
        ) == (
            "new BrowserNewContextOptions { "
            "ViewportSize = new ViewportSize { Width = 1, Height = 2 }, "
            "ColorScheme = ColorScheme.Dark }"
        )


class TestCSharpHeaderFooter:
    """ヘッダー・フッターのテスト。"""

    def test_protocol_conformance(self, generator):
        assert isinstance(generator, LanguageGenerator)
        assert generator.highlighter_type() == HighlighterType.CSHARP

    def test_default_header(self, generator):
        header = generator.generate_header("chromium", LaunchConfig(), ContextConfig())
        assert header == (
            "using Microsoft.Playwright;\n"
            "using System;\n"
            "using System.Threading.Tasks;\n"
            "\n"
            "class Program\n"
            "{\n"
            "    public static async Task Main()\n"
            "    {\n"
            "        using var playwright = await Playwright.CreateAsync();\n"
            "        await using var browser = await playwright.Chromium.LaunchAsync("
            "new BrowserTypeLaunchOptions { Headless = false });\n"
            "        var context = await browser.NewContextAsync();\n"
            "        var page = await context.NewPageAsync();\n"
        )

    def test_header_with_device(self, generator):
        header = generator.generate_header(
            "webkit", LaunchConfig(), ContextConfig(), "iPhone 11",
        )
        assert (
            "browser.NewContextAsync("
            'new BrowserNewContextOptions(playwright.Devices["iPhone 11"]));'
        ) in header
        assert "playwright.Webkit.LaunchAsync" in header

    def test_header_geolocation(self, generator):
        header = generator.generate_header(
            "chromium",
            LaunchConfig(proxy_server="http://proxy:3128"),
            ContextConfig(geolocation=Geolocation(latitude=1.5, longitude=-2.0)),
        )
        assert 'Proxy = new Proxy { Server = "http://proxy:3128" }' in header
        assert "Geolocation = new Geolocation { Latitude = 1.5F, Longitude = -2.0F }" in header
        assert 'Permissions = new[] { "geolocation" }' in header

    def test_footer(self, generator):
        assert generator.generate_footer("auth.json") == (
            "\n"
            "        // ---------------------\n"
            "        await context.StorageStateAsync(new BrowserContextStorageStateOptions "
            '{ Path = "auth.json" });\n'
            "        await context.CloseAsync();\n"
            "    }\n"
            "}\n"
        )

    def test_header_is_deterministic(self, generator):
        context = ContextConfig(viewport=Viewport(width=10, height=20), locale="fr-FR")
        assert generator.generate_header(
            "firefox", LaunchConfig(), context,
        ) == CSharpLanguageGenerator().generate_header("firefox", LaunchConfig(), context)


class TestCSharpActions:
    """generate_action() のテスト。"""

    def test_navigate(self, generator, make_action, in_context):
        text = generator.generate_action(
            in_context(make_action("navigate", value="https://example.com")), False,
        )
        assert text == (
            "\n"
            "        // Go to https://example.com\n"
            '        await page.GotoAsync("https://example.com");\n'
        )

    def test_click_options(self, generator, make_action, in_context):
        text = generator.generate_action(
            in_context(make_action(
                "click", selector="#b", button="right", modifiers=("Shift",), click_count=3,
            )),
            False,
        )
        assert (
            'await page.ClickAsync("#b", new PageClickOptions { Button = MouseButton.Right, '
            "Modifiers = new[] { KeyboardModifier.Shift }, ClickCount = 3 });"
        ) in text

    def test_frame_click_uses_frame_options(
        self, generator, make_action, in_context, child_frame,
    ):
        text = generator.generate_action(
            in_context(make_action(
                "click", selector="#b", click_count=2, button="middle",
                frame=child_frame(url="https://f/"),
            )),
            False,
        )
        assert (
            'await page.FrameByUrl("https://f/").DblClickAsync("#b", '
            "new FrameDblClickOptions { Button = MouseButton.Middle });"
        ) in text

    def test_navigation_wraps_action(self, generator, make_action, in_context):
        action = make_action(
            "click", selector="#go", signals=(NavigationSignal(url="https://a/"),),
        )
        text = generator.generate_action(in_context(action), False)
        assert text == (
            "\n"
            "        // Click #go\n"
            "        await page.RunAndWaitForNavigationAsync(async () =>\n"
            "        {\n"
            '            await page.ClickAsync("#go");\n'
            "        });\n"
        )

    def test_in_flight_navigation(self, generator, make_action, in_context):
        action = make_action(
            "click", selector="#go", signals=(NavigationSignal(url="https://a/"),),
        )
        text = generator.generate_action(in_context(action), True)
        assert "RunAndWaitForNavigationAsync" not in text
        assert '        // Assert.AreEqual("https://a/", page.Url);\n' in text

    def test_popup_and_download(self, generator, make_action, in_context):
        action = make_action(
            "press-key", selector="#b", value="Enter",
            signals=(DownloadSignal(), PopupSignal(context_id="c2")),
        )
        text = generator.generate_action(
            in_context(action, popup_alias="page1", download_alias="download"), False,
        )
        assert "var page1 = await page.RunAndWaitForPopupAsync(async () =>" in text
        assert "var download = await page.RunAndWaitForDownloadAsync(async () =>" in text
        assert text.index("RunAndWaitForPopupAsync") < text.index("RunAndWaitForDownloadAsync")
        assert text.count('PressAsync("#b", "Enter")') == 1

    def test_dialog_handler_is_block_scoped(self, generator, make_action, in_context):
        action = make_action("click", selector="#b", signals=(DialogSignal(),))
        text = generator.generate_action(in_context(action), False)
        assert "            EventHandler<IDialog>? dialogHandler = null;\n" in text
        assert "                page.Dialog -= dialogHandler;\n" in text
        assert "            page.Dialog += dialogHandler;\n" in text
        assert text.count("{") == text.count("}")

    def test_dialog_dismiss_task_is_discarded(self, generator, make_action, in_context):
        """await しない DismissAsync() は破棄代入して CS4014 警告を避けること。"""
        action = make_action("click", selector="#b", signals=(DialogSignal(),))
        text = generator.generate_action(in_context(action), False)
        assert "                _ = dialog.DismissAsync();\n" in text
        assert not re.search(r"^\s*dialog\.DismissAsync\(\);", text, re.MULTILINE)

    def test_set_viewport(self, generator, make_action, in_context):
        text = generator.generate_action(
            in_context(make_action("set-viewport-or-storage", value="800,600")), False,
        )
        assert "await page.SetViewportSizeAsync(800, 600);" in text

    def test_select_and_press(self, generator, make_action, in_context):
        select = generator.generate_action(
            in_context(make_action("select", selector="#s", options=("a", "b"))), False,
        )
        press = generator.generate_action(
            in_context(make_action("press-key", selector="#q", value="Tab",
                                   modifiers=("Shift",))),
            False,
        )
        assert 'await page.SelectOptionAsync("#s", new[] { "a", "b" });' in select
        assert 'await page.PressAsync("#q", "Shift+Tab");' in press

    def test_opens_page(self, generator, make_action, in_context):
        text = generator.generate_action(
            in_context(make_action("closed", context_id="c2"),
                       page_alias="page2", opens_page=True),
            False,
        )
        assert "        var page2 = await context.NewPageAsync();\n" in text
        assert "        await page2.CloseAsync();\n" in text
