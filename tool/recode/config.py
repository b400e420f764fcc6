"""
起動・コンテキスト設定 — セッション開始時に一度だけ確定する設定

ブラウザ起動設定（LaunchConfig）とコンテキスト設定（ContextConfig）を
言語非依存の形で保持し、各生成器のヘッダー出力にそのまま渡す。
CLI 層から渡される文字列オプション（"1280,720" 等）の解析と検証もここで行い、
不正な値はセッション開始前に ConfigurationError として報告する。

環境変数一覧（RecorderSettings）:
  RECODE_TARGETS      : 出力言語（カンマ区切り, デフォルト: python）
  RECODE_OUTPUT       : 出力先ファイル（未指定時は標準出力）
  RECODE_SAVE_STORAGE : 終了時にストレージ状態を保存するパス
  RECODE_BROWSER      : ブラウザ（chromium / firefox / webkit, 未指定時はログの値）
  RECODE_VIEWPORT     : ビューポートサイズ（例: 1280,720, 未指定時はログの値）
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# 環境変数キー定数
# ---------------------------------------------------------------------------

_ENV_TARGETS = "RECODE_TARGETS"
_ENV_OUTPUT = "RECODE_OUTPUT"
_ENV_SAVE_STORAGE = "RECODE_SAVE_STORAGE"
_ENV_BROWSER = "RECODE_BROWSER"
_ENV_VIEWPORT = "RECODE_VIEWPORT"

# ブラウザ別名 → 正式名
_BROWSER_ALIASES: dict[str, str] = {
    "chromium": "chromium",
    "cr": "chromium",
    "firefox": "firefox",
    "ff": "firefox",
    "webkit": "webkit",
    "wk": "webkit",
}


# ---------------------------------------------------------------------------
# デバイスプリセット
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DevicePreset:
    """デバイスエミュレーションのプリセット。

    Attributes:
        name: デバイス名（生成コードでは devices[name] として参照）
        user_agent: ユーザーエージェント文字列
        viewport: ビューポートサイズ (幅, 高さ)
        device_scale_factor: デバイスピクセル比
        is_mobile: モバイル端末か
        has_touch: タッチ操作に対応するか
        default_browser: 既定のブラウザ
    """

    name: str
    user_agent: str
    viewport: tuple[int, int]
    device_scale_factor: float
    is_mobile: bool
    has_touch: bool
    default_browser: str


DEVICE_PRESETS: dict[str, DevicePreset] = {
    preset.name: preset
    for preset in (
        DevicePreset(
            name="iPhone 11",
            user_agent=(
                "Mozilla/5.0 (iPhone; CPU iPhone OS 12_2 like Mac OS X) "
                "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/13.0 "
                "Mobile/15E148 Safari/604.1"
            ),
            viewport=(414, 715),
            device_scale_factor=2,
            is_mobile=True,
            has_touch=True,
            default_browser="webkit",
        ),
        DevicePreset(
            name="iPhone 12",
            user_agent=(
                "Mozilla/5.0 (iPhone; CPU iPhone OS 14_4 like Mac OS X) "
                "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/14.0.3 "
                "Mobile/15E148 Safari/604.1"
            ),
            viewport=(390, 664),
            device_scale_factor=3,
            is_mobile=True,
            has_touch=True,
            default_browser="webkit",
        ),
        DevicePreset(
            name="iPad Mini",
            user_agent=(
                "Mozilla/5.0 (iPad; CPU OS 12_2 like Mac OS X) "
                "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/13.0 "
                "Mobile/15E148 Safari/604.1"
            ),
            viewport=(768, 1024),
            device_scale_factor=2,
            is_mobile=True,
            has_touch=True,
            default_browser="webkit",
        ),
        DevicePreset(
            name="Pixel 5",
            user_agent=(
                "Mozilla/5.0 (Linux; Android 11; Pixel 5) AppleWebKit/537.36 "
                "(KHTML, like Gecko) Chrome/90.0.4421.0 Mobile Safari/537.36"
            ),
            viewport=(393, 727),
            device_scale_factor=2.75,
            is_mobile=True,
            has_touch=True,
            default_browser="chromium",
        ),
        DevicePreset(
            name="Galaxy S9+",
            user_agent=(
                "Mozilla/5.0 (Linux; Android 8.0.0; SM-G965U Build/R16NW) "
                "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/90.0.4421.0 "
                "Mobile Safari/537.36"
            ),
            viewport=(320, 658),
            device_scale_factor=4.5,
            is_mobile=True,
            has_touch=True,
            default_browser="chromium",
        ),
        DevicePreset(
            name="Desktop Chrome",
            user_agent=(
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                "(KHTML, like Gecko) Chrome/90.0.4421.0 Safari/537.36"
            ),
            viewport=(1280, 720),
            device_scale_factor=1,
            is_mobile=False,
            has_touch=False,
            default_browser="chromium",
        ),
    )
}


# ---------------------------------------------------------------------------
# 設定モデル
# ---------------------------------------------------------------------------

class Viewport(BaseModel):
    """ビューポートサイズ（ピクセル）。"""

    model_config = ConfigDict(frozen=True)

    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)


class Geolocation(BaseModel):
    """位置情報エミュレーションの座標。"""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class LaunchConfig(BaseModel):
    """ブラウザ起動設定。

    ブラウザ種別はヘッダー出力時に context_label として別途渡す。

    Attributes:
        headless: ヘッドレスで起動するか
        channel: ブラウザチャンネル（chrome / msedge 等）
        proxy_server: プロキシサーバー URL
    """

    model_config = ConfigDict(frozen=True)

    headless: bool = False
    channel: Optional[str] = None
    proxy_server: Optional[str] = None

    def options(self) -> dict[str, Any]:
        """launch() に渡すオプションを正規名（camelCase）で返す。"""
        result: dict[str, Any] = {"headless": self.headless}
        if self.channel:
            result["channel"] = self.channel
        if self.proxy_server:
            result["proxy"] = {"server": self.proxy_server}
        return result


class ContextConfig(BaseModel):
    """ブラウザコンテキスト設定。

    明示指定されたオプションのみを保持する。デバイス名はヘッダー出力時に
    device_label として別途渡され、生成コードはデバイスプリセットを
    展開した上でこれらのオプションで上書きする。
    """

    model_config = ConfigDict(frozen=True)

    viewport: Optional[Viewport] = None
    locale: Optional[str] = None
    timezone_id: Optional[str] = None
    geolocation: Optional[Geolocation] = None
    user_agent: Optional[str] = None
    color_scheme: Optional[Literal["light", "dark"]] = None

    def options(self) -> dict[str, Any]:
        """new_context() に渡すオプションを正規名（camelCase）で返す。

        キーの順序は固定で、同じ設定からは常に同じ辞書が得られる。
        """
        result: dict[str, Any] = {}
        if self.viewport is not None:
            result["viewport"] = {
                "width": self.viewport.width,
                "height": self.viewport.height,
            }
        if self.locale:
            result["locale"] = self.locale
        if self.timezone_id:
            result["timezoneId"] = self.timezone_id
        if self.geolocation is not None:
            result["geolocation"] = {
                "latitude": self.geolocation.latitude,
                "longitude": self.geolocation.longitude,
            }
            result["permissions"] = ["geolocation"]
        if self.user_agent:
            result["userAgent"] = self.user_agent
        if self.color_scheme:
            result["colorScheme"] = self.color_scheme
        return result


# ---------------------------------------------------------------------------
# 文字列オプションの解析
# ---------------------------------------------------------------------------

def lookup_browser(name: str) -> str:
    """ブラウザ名（別名可）を正式名に変換する。

    Raises:
        ConfigurationError: 未知のブラウザ名の場合
    """
    try:
        return _BROWSER_ALIASES[name.strip().lower()]
    except KeyError:
        raise ConfigurationError(
            f"未知のブラウザです: '{name}' "
            f"(chromium / firefox / webkit のいずれかを指定してください)"
        ) from None


def lookup_device(name: str) -> DevicePreset:
    """デバイス名からプリセットを取得する。

    Raises:
        ConfigurationError: 未登録のデバイス名の場合
    """
    if name not in DEVICE_PRESETS:
        available = ", ".join(f'"{n}"' for n in DEVICE_PRESETS)
        raise ConfigurationError(
            f"デバイスが見つかりません: '{name}'。利用可能なデバイス: {available}"
        )
    return DEVICE_PRESETS[name]


def parse_viewport(value: str) -> Viewport:
    """"幅,高さ" 形式の文字列をビューポートに変換する。

    Args:
        value: 例 "1280,720" / "1280, 720"

    Raises:
        ConfigurationError: 形式が不正な場合
    """
    try:
        width, height = (int(part.strip()) for part in value.split(","))
        return Viewport(width=width, height=height)
    except (ValueError, ValidationError):
        raise ConfigurationError(
            f"ビューポートの形式が不正です: '{value}' (例: 1280,720)"
        ) from None


def parse_geolocation(value: str) -> Geolocation:
    """"緯度,経度" 形式の文字列を座標に変換する。

    Args:
        value: 例 "37.819722,-122.478611"

    Raises:
        ConfigurationError: 形式が不正な場合
    """
    try:
        latitude, longitude = (float(part.strip()) for part in value.split(","))
        return Geolocation(latitude=latitude, longitude=longitude)
    except (ValueError, ValidationError):
        raise ConfigurationError(
            f"位置情報の形式が不正です: '{value}' (例: 37.819722,-122.478611)"
        ) from None


def parse_color_scheme(value: str) -> Literal["light", "dark"]:
    """カラースキーム文字列を検証する。"""
    if value not in ("light", "dark"):
        raise ConfigurationError(
            f'カラースキームが不正です: \'{value}\' ("light" / "dark")'
        )
    return value  # type: ignore[return-value]


def build_configs(
    *,
    headless: bool = False,
    channel: Optional[str] = None,
    proxy_server: Optional[str] = None,
    viewport_size: Optional[str] = None,
    geolocation: Optional[str] = None,
    lang: Optional[str] = None,
    timezone: Optional[str] = None,
    user_agent: Optional[str] = None,
    color_scheme: Optional[str] = None,
) -> tuple[LaunchConfig, ContextConfig]:
    """文字列オプションから起動設定とコンテキスト設定を構築する。

    すべての検証をここで行い、不正な値があればセッション開始前に失敗させる。
    ブラウザ名とデバイス名は lookup_browser() / lookup_device() で検証する。

    Returns:
        (LaunchConfig, ContextConfig)

    Raises:
        ConfigurationError: いずれかのオプションが不正な場合
    """
    try:
        launch = LaunchConfig(
            headless=headless,
            channel=channel,
            proxy_server=proxy_server,
        )
        context = ContextConfig(
            viewport=parse_viewport(viewport_size) if viewport_size else None,
            locale=lang,
            timezone_id=timezone,
            geolocation=parse_geolocation(geolocation) if geolocation else None,
            user_agent=user_agent,
            color_scheme=parse_color_scheme(color_scheme) if color_scheme else None,
        )
    except ValidationError as exc:
        raise ConfigurationError(f"設定が不正です: {exc}") from exc

    logger.debug("設定を構築しました: %s / %s", launch, context)
    return launch, context


# ---------------------------------------------------------------------------
# 環境変数からの読み込み
# ---------------------------------------------------------------------------

@dataclass
class RecorderSettings:
    """環境変数で制御するレコーダーの実行時設定。

    Attributes:
        targets: 出力言語のリスト（登録順に生成器を並べる）
        output: 出力先ファイル（None で標準出力）
        save_storage: 終了時のストレージ状態保存先
        browser: ブラウザ名（指定時はログのブラウザ種別を上書き）
        viewport: ビューポート文字列（"幅,高さ"。指定時はログの設定を上書き）
    """

    targets: list[str] = field(default_factory=lambda: ["python"])
    output: Optional[str] = None
    save_storage: Optional[str] = None
    browser: Optional[str] = None
    viewport: Optional[str] = None


def load_settings_from_env() -> RecorderSettings:
    """環境変数から RecorderSettings を生成する。

    設定されていない環境変数はデフォルト値を使用する。
    """
    settings = RecorderSettings()

    if _ENV_TARGETS in os.environ:
        targets = [
            t.strip() for t in os.environ[_ENV_TARGETS].split(",") if t.strip()
        ]
        if targets:
            settings.targets = targets
        else:
            logger.warning("RECODE_TARGETS が空です。デフォルトを使用します")

    if _ENV_OUTPUT in os.environ:
        settings.output = os.environ[_ENV_OUTPUT] or None

    if _ENV_SAVE_STORAGE in os.environ:
        settings.save_storage = os.environ[_ENV_SAVE_STORAGE] or None

    if _ENV_BROWSER in os.environ:
        settings.browser = os.environ[_ENV_BROWSER] or None

    if _ENV_VIEWPORT in os.environ:
        settings.viewport = os.environ[_ENV_VIEWPORT] or None

    logger.info("設定を読み込みました: %s", settings)
    return settings
