"""
recode — 記録したブラウザ操作を複数言語の Playwright スクリプトに逐次変換する

主要エクスポート:
  - Action / ActionKind: 記録された操作
  - RecorderController: セッション管理と全生成器への配送
  - ActionPump: 上流の分類器とコントローラをつなぐキュー
  - LaunchConfig / ContextConfig / build_configs: セッション設定
  - create_default_registry: 標準生成器を登録したレジストリ
"""

from .actions import (
    Action,
    ActionKind,
    DialogSignal,
    DownloadSignal,
    FrameDescription,
    NavigationSignal,
    PopupSignal,
)
from .config import ContextConfig, LaunchConfig, build_configs
from .controller import RecorderController, SessionState
from .generators import create_default_registry
from .pump import ActionPump

__all__ = [
    "Action",
    "ActionKind",
    "ActionPump",
    "ContextConfig",
    "DialogSignal",
    "DownloadSignal",
    "FrameDescription",
    "LaunchConfig",
    "NavigationSignal",
    "PopupSignal",
    "RecorderController",
    "SessionState",
    "build_configs",
    "create_default_registry",
]
