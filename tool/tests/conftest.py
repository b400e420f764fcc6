"""
テスト共通フィクスチャ定義

全テストモジュールで共有するフィクスチャを提供する。
アクションは make_action() で生成し、timestamp は呼び出しごとに単調増加させる。
"""

from __future__ import annotations

import itertools
from typing import Any, Callable

import pytest

from recode.actions import Action, ActionKind, FrameDescription
from recode.config import ContextConfig, LaunchConfig
from recode.controller import RecorderController
from recode.generators.base import ActionInContext
from recode.generators.registry import create_default_registry
from recode.sinks import MemorySink


# ---------------------------------------------------------------------------
# アクション生成
# ---------------------------------------------------------------------------

_clock = itertools.count(1)


def _make_action(kind: ActionKind | str, **fields: Any) -> Action:
    """テスト用のアクションを生成する。

    context_id の既定値は "ctx-1"、timestamp は呼び出し順に増加する。
    """
    fields.setdefault("context_id", "ctx-1")
    fields.setdefault("timestamp", float(next(_clock)))
    return Action(kind=ActionKind(kind), **fields)


def _in_context(action: Action, **fields: Any) -> ActionInContext:
    """生成器に直接渡すための ActionInContext を生成する。"""
    return ActionInContext(action=action, **fields)


def _child_frame(name: str | None = None, url: str | None = None) -> FrameDescription:
    """子フレームの FrameDescription を生成する。"""
    return FrameDescription(is_main_frame=False, name=name, url=url)


# ---------------------------------------------------------------------------
# pytest フィクスチャ
# ---------------------------------------------------------------------------

@pytest.fixture
def make_action() -> Callable[..., Action]:
    """アクション生成関数（context_id 既定 "ctx-1"、timestamp は単調増加）。"""
    return _make_action


@pytest.fixture
def in_context() -> Callable[..., ActionInContext]:
    return _in_context


@pytest.fixture
def child_frame() -> Callable[..., FrameDescription]:
    return _child_frame


@pytest.fixture
def registry():
    """標準生成器が登録されたレジストリ。"""
    return create_default_registry()


@pytest.fixture
def launch_config() -> LaunchConfig:
    return LaunchConfig()


@pytest.fixture
def context_config() -> ContextConfig:
    return ContextConfig()


@pytest.fixture
def sinks() -> dict[str, MemorySink]:
    """言語名 → MemorySink の辞書（sink_factory で遅延生成される）。"""
    return {}


@pytest.fixture
def sink_factory(sinks: dict[str, MemorySink]) -> Callable[[str], list[MemorySink]]:
    def factory(name: str) -> list[MemorySink]:
        sinks[name] = MemorySink()
        return [sinks[name]]

    return factory


@pytest.fixture
def controller(registry, sink_factory) -> RecorderController:
    """python / javascript の 2 生成器を登録した未開始のコントローラ。"""
    return RecorderController.from_registry(
        registry, ["python", "javascript"], sink_factory,
    )


@pytest.fixture
def recording(controller, launch_config, context_config) -> RecorderController:
    """記録を開始済みのコントローラ。"""
    controller.start("chromium", launch_config, context_config)
    return controller


