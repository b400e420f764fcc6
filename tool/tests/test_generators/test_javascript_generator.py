"""
JavaScript 生成器のユニットテスト

Promise.all による待機、ダイアログハンドラ、ヘッダー・フッターの出力を検証する。
"""

import pytest

from recode.actions import DialogSignal, DownloadSignal, NavigationSignal, PopupSignal
from recode.config import ContextConfig, LaunchConfig, Viewport
from recode.generators.base import HighlighterType, LanguageGenerator
from recode.generators.javascript import JavaScriptLanguageGenerator, format_object, quote


@pytest.fixture
def generator() -> JavaScriptLanguageGenerator:
    return JavaScriptLanguageGenerator()


class TestJavaScriptLiterals:
    """quote() / format_object() のテスト。"""

    def test_quote(self):
        assert quote("it's") == "'it\\'s'"
        assert quote('a"b') == "'a\"b'"
        assert quote("a\nb") == "'a\\nb'"
        assert quote("\x00") == "'\\u0000'"
        assert quote("\u2028") == "'\\u2028'"

    def test_format_object(self):
        assert format_object({"width": 1, "height": 2}) == "{ width: 1, height: 2 }"
        assert format_object({}) == "{}"
        assert format_object(["Shift"]) == "['Shift']"
        assert format_object(False) == "false"


class TestJavaScriptHeaderFooter:
    """ヘッダー・フッターのテスト。"""

    def test_protocol_conformance(self, generator):
        assert isinstance(generator, LanguageGenerator)
        assert generator.highlighter_type() == HighlighterType.JAVASCRIPT

    def test_default_header(self, generator):
        header = generator.generate_header("chromium", LaunchConfig(), ContextConfig())
        assert header == (
            "const { chromium } = require('playwright');\n"
            "\n"
            "(async () => {\n"
            "  const browser = await chromium.launch({ headless: false });\n"
            "  const context = await browser.newContext();\n"
            "  const page = await context.newPage();\n"
        )

    def test_header_with_device_and_options(self, generator):
        header = generator.generate_header(
            "webkit",
            LaunchConfig(),
            ContextConfig(viewport=Viewport(width=800, height=600), locale="ja-JP"),
            "iPhone 11",
        )
        assert "const { webkit, devices } = require('playwright');" in header
        assert (
            "browser.newContext({ ...devices['iPhone 11'], "
            "viewport: { width: 800, height: 600 }, locale: 'ja-JP' });"
        ) in header

    def test_footer(self, generator):
        assert generator.generate_footer("auth.json") == (
            "\n"
            "  // ---------------------\n"
            "  await context.storageState({ path: 'auth.json' });\n"
            "  await context.close();\n"
            "  await browser.close();\n"
            "})();\n"
        )


class TestJavaScriptActions:
    """generate_action() のテスト。"""

    def test_navigate(self, generator, make_action, in_context):
        text = generator.generate_action(
            in_context(make_action("navigate", value="https://example.com")), False,
        )
        assert text == (
            "\n"
            "  // Go to https://example.com\n"
            "  await page.goto('https://example.com');\n"
        )

    def test_click_options(self, generator, make_action, in_context):
        text = generator.generate_action(
            in_context(make_action(
                "click", selector="#b", button="middle", modifiers=("Alt", "Meta"),
            )),
            False,
        )
        assert "await page.click('#b', { button: 'middle', modifiers: ['Alt', 'Meta'] });" in text

    def test_select_multiple(self, generator, make_action, in_context):
        text = generator.generate_action(
            in_context(make_action("select", selector="#s", options=("a", "b"))), False,
        )
        assert "await page.selectOption('#s', ['a', 'b']);" in text

    def test_navigation_uses_promise_all(self, generator, make_action, in_context):
        action = make_action(
            "click", selector="#go", signals=(NavigationSignal(url="https://a/next"),),
        )
        text = generator.generate_action(in_context(action), False)
        assert text == (
            "\n"
            "  // Click #go\n"
            "  await Promise.all([\n"
            "    page.waitForNavigation(),\n"
            "    page.click('#go')\n"
            "  ]);\n"
        )

    def test_in_flight_navigation(self, generator, make_action, in_context):
        action = make_action(
            "click", selector="#go", signals=(NavigationSignal(url="https://a/next"),),
        )
        text = generator.generate_action(in_context(action), True)
        assert "Promise.all" not in text
        assert "  await page.click('#go');\n" in text
        assert "  // assert.equal(page.url(), 'https://a/next');\n" in text

    def test_popup_download_navigation_order(self, generator, make_action, in_context):
        """待機式は popup → download → navigation の順に並ぶこと。"""
        action = make_action(
            "click", selector="#b",
            signals=(
                NavigationSignal(url="https://a/"),
                DownloadSignal(),
                PopupSignal(context_id="c2"),
            ),
        )
        text = generator.generate_action(
            in_context(action, popup_alias="page1", download_alias="download1"), False,
        )
        assert "  const [page1, download1] = await Promise.all([\n" in text
        popup = text.index("page.waitForEvent('popup')")
        download = text.index("page.waitForEvent('download')")
        navigation = text.index("page.waitForNavigation()")
        click = text.index("page.click('#b')")
        assert popup < download < navigation < click
        assert text.count("page.click('#b')") == 1

    def test_dialog_handler(self, generator, make_action, in_context):
        action = make_action("fill", selector="#f", value="v", signals=(DialogSignal(),))
        text = generator.generate_action(in_context(action), False)
        assert "  page.once('dialog', dialog => {\n" in text
        assert "    dialog.dismiss().catch(() => {});\n" in text
        assert text.index("page.once") < text.index("page.fill")

    def test_opens_page(self, generator, make_action, in_context):
        text = generator.generate_action(
            in_context(make_action("navigate", context_id="c2", value="https://b/"),
                       page_alias="page1", opens_page=True),
            False,
        )
        assert "  const page1 = await context.newPage();\n" in text
        assert "  await page1.goto('https://b/');\n" in text

    def test_frame_subject(self, generator, make_action, in_context, child_frame):
        text = generator.generate_action(
            in_context(make_action("fill", selector="#f", value="v",
                                   frame=child_frame(name="inner"))),
            False,
        )
        assert "await page.frame({ name: 'inner' }).fill('#f', 'v');" in text

    def test_set_viewport(self, generator, make_action, in_context):
        text = generator.generate_action(
            in_context(make_action("set-viewport-or-storage", value="1024x768")), False,
        )
        assert "await page.setViewportSize({ width: 1024, height: 768 });" in text

    def test_save_storage(self, generator, make_action, in_context):
        text = generator.generate_action(
            in_context(make_action("set-viewport-or-storage", value="state.json")), False,
        )
        assert "await context.storageState({ path: 'state.json' });" in text

    def test_closed(self, generator, make_action, in_context):
        text = generator.generate_action(in_context(make_action("closed")), False)
        assert "  await page.close();\n" in text
