"""
設定モジュールのユニットテスト

文字列オプションの解析、起動・コンテキスト設定のオプション辞書、
環境変数からの RecorderSettings 読み込みを検証する。
"""

import pytest

from recode.config import (
    DEVICE_PRESETS,
    ContextConfig,
    Geolocation,
    LaunchConfig,
    RecorderSettings,
    Viewport,
    build_configs,
    load_settings_from_env,
    lookup_browser,
    lookup_device,
    parse_color_scheme,
    parse_geolocation,
    parse_viewport,
)
from recode.errors import ConfigurationError


# ---------------------------------------------------------------------------
# 文字列オプションの解析
# ---------------------------------------------------------------------------

class TestParsers:
    """lookup_* / parse_* のテスト。"""

    @pytest.mark.parametrize(
        "name, expected",
        [("chromium", "chromium"), ("cr", "chromium"), ("FF", "firefox"), ("wk", "webkit")],
    )
    def test_lookup_browser(self, name, expected):
        assert lookup_browser(name) == expected

    def test_lookup_browser_unknown(self):
        with pytest.raises(ConfigurationError, match="未知のブラウザ"):
            lookup_browser("netscape")

    def test_lookup_device(self):
        preset = lookup_device("Pixel 5")
        assert preset.is_mobile
        assert preset.default_browser == "chromium"

    def test_lookup_device_unknown_lists_available(self):
        with pytest.raises(ConfigurationError) as exc_info:
            lookup_device("Nokia 3310")
        assert '"iPhone 11"' in str(exc_info.value)

    def test_device_presets_keyed_by_name(self):
        assert all(name == preset.name for name, preset in DEVICE_PRESETS.items())

    @pytest.mark.parametrize("value", ["1280,720", "1280, 720", " 1280 ,720 "])
    def test_parse_viewport(self, value):
        assert parse_viewport(value) == Viewport(width=1280, height=720)

    @pytest.mark.parametrize("value", ["1280", "a,b", "0,720", "1,2,3", "-5,10"])
    def test_parse_viewport_invalid(self, value):
        with pytest.raises(ConfigurationError, match="ビューポート"):
            parse_viewport(value)

    def test_parse_geolocation(self):
        geo = parse_geolocation("37.819722,-122.478611")
        assert geo == Geolocation(latitude=37.819722, longitude=-122.478611)

    @pytest.mark.parametrize("value", ["91,0", "0,181", "north,east", "1"])
    def test_parse_geolocation_invalid(self, value):
        with pytest.raises(ConfigurationError, match="位置情報"):
            parse_geolocation(value)

    def test_parse_color_scheme(self):
        assert parse_color_scheme("dark") == "dark"
        with pytest.raises(ConfigurationError):
            parse_color_scheme("sepia")


# ---------------------------------------------------------------------------
# オプション辞書
# ---------------------------------------------------------------------------

class TestConfigOptions:
    """LaunchConfig / ContextConfig の options() のテスト。"""

    def test_launch_defaults(self):
        assert LaunchConfig().options() == {"headless": False}

    def test_launch_full(self):
        config = LaunchConfig(headless=True, channel="msedge", proxy_server="http://p:3128")
        assert config.options() == {
            "headless": True,
            "channel": "msedge",
            "proxy": {"server": "http://p:3128"},
        }

    def test_context_empty(self):
        assert ContextConfig().options() == {}

    def test_context_key_order_is_fixed(self):
        """キーの順序が入力順に依らず固定であること。"""
        config = ContextConfig(
            color_scheme="dark",
            user_agent="UA",
            geolocation=Geolocation(latitude=1.5, longitude=2.5),
            timezone_id="Asia/Tokyo",
            locale="ja-JP",
            viewport=Viewport(width=800, height=600),
        )
        assert list(config.options()) == [
            "viewport", "locale", "timezoneId", "geolocation",
            "permissions", "userAgent", "colorScheme",
        ]
        assert config.options()["permissions"] == ["geolocation"]


# ---------------------------------------------------------------------------
# build_configs
# ---------------------------------------------------------------------------

class TestBuildConfigs:
    """build_configs() のテスト。"""

    def test_build_from_strings(self):
        launch, context = build_configs(
            headless=True,
            viewport_size="800,600",
            geolocation="35.68,139.76",
            lang="ja-JP",
            timezone="Asia/Tokyo",
            color_scheme="light",
        )
        assert launch.headless is True
        assert context.viewport == Viewport(width=800, height=600)
        assert context.geolocation.latitude == 35.68
        assert context.locale == "ja-JP"
        assert context.timezone_id == "Asia/Tokyo"
        assert context.color_scheme == "light"

    def test_build_defaults(self):
        launch, context = build_configs()
        assert launch == LaunchConfig()
        assert context == ContextConfig()

    def test_invalid_option_fails_before_start(self):
        with pytest.raises(ConfigurationError):
            build_configs(viewport_size="big")


# ---------------------------------------------------------------------------
# 環境変数
# ---------------------------------------------------------------------------

class TestSettingsFromEnv:
    """load_settings_from_env() のテスト。"""

    @pytest.fixture(autouse=True)
    def _clear_env(self, monkeypatch):
        for key in (
            "RECODE_TARGETS", "RECODE_OUTPUT", "RECODE_SAVE_STORAGE",
            "RECODE_BROWSER", "RECODE_VIEWPORT",
        ):
            monkeypatch.delenv(key, raising=False)

    def test_defaults(self):
        assert load_settings_from_env() == RecorderSettings()
        assert RecorderSettings().targets == ["python"]

    def test_all_variables(self, monkeypatch):
        monkeypatch.setenv("RECODE_TARGETS", "javascript, csharp")
        monkeypatch.setenv("RECODE_OUTPUT", "out/script.js")
        monkeypatch.setenv("RECODE_SAVE_STORAGE", "auth.json")
        monkeypatch.setenv("RECODE_BROWSER", "firefox")
        monkeypatch.setenv("RECODE_VIEWPORT", "1024,768")

        settings = load_settings_from_env()
        assert settings.targets == ["javascript", "csharp"]
        assert settings.output == "out/script.js"
        assert settings.save_storage == "auth.json"
        assert settings.browser == "firefox"
        assert settings.viewport == "1024,768"

    def test_empty_targets_keeps_default(self, monkeypatch):
        monkeypatch.setenv("RECODE_TARGETS", " , ")
        assert load_settings_from_env().targets == ["python"]

    def test_empty_output_means_stdout(self, monkeypatch):
        monkeypatch.setenv("RECODE_OUTPUT", "")
        assert load_settings_from_env().output is None
