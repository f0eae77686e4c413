"""
Action 配置加载。

设计目标：
- **一次构造**：入口处从环境变量读一次，之后显式传给每个步骤（不在模块加载时读全局）
- **类型安全**：使用 Pydantic 校验 URL 等，减少运行时踩坑
- **可测试**：加载函数接收 `environ` 显式输入，便于单元测试
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Mapping

from pydantic import BaseModel, Field, HttpUrl

from setup_mmock.install.version import normalize_version
from setup_mmock.runner.commands import get_input


class ActionConfig(BaseModel):
    """一次运行所需的全部配置（inputs + runner 环境）。"""

    version: str = Field(min_length=1)
    github_token: str | None = None
    api_url: HttpUrl
    server_url: HttpUrl
    temp_dir: str
    cache_dir: str | None = None
    # composite action 里由 actions/cache 负责缓存时为 True
    actions_cache: bool = False
    actions_cache_matched_key: str | None = None


def _cache_dir_from_env(environ: Mapping[str, str]) -> str | None:
    explicit = environ.get("SETUP_MMOCK_CACHE_DIR", "").strip()
    if explicit:
        return explicit
    tool_cache = environ.get("RUNNER_TOOL_CACHE", "").strip()
    if tool_cache:
        return os.path.join(tool_cache, "setup-mmock")
    return None


def load_config_from_env(environ: Mapping[str, str]) -> ActionConfig:
    """
    从环境变量加载并校验配置。

    - **输入**：`environ`（例如 `os.environ`）
    - **inputs**：`version`（必填，去掉一个前导 v/V）、`github-token`（可选）
    - **缓存**：`SETUP_MMOCK_ACTIONS_CACHE=true` 时交给 actions/cache，否则走本地缓存目录
    - **失败**：version 缺失/为空则抛 `ValueError`
    """
    version = normalize_version(get_input(environ, "version", required=True))
    token = get_input(environ, "github-token")

    return ActionConfig(
        version=version,
        github_token=token or None,
        api_url=environ.get("GITHUB_API_URL") or "https://api.github.com",
        server_url=environ.get("GITHUB_SERVER_URL") or "https://github.com",
        temp_dir=tempfile.gettempdir(),
        cache_dir=_cache_dir_from_env(environ),
        actions_cache=environ.get("SETUP_MMOCK_ACTIONS_CACHE", "").strip().lower() == "true",
        actions_cache_matched_key=environ.get("SETUP_MMOCK_ACTIONS_CACHE_MATCHED_KEY", "").strip() or None,
    )
