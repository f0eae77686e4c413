"""
Action Orchestrator（核心流程编排）。

`plan_install` 在安装前算出版本、缓存 key 与安装目录（composite action 的 prepare step 用它）。

固定的 3 步 pipeline：
- Step 1: Resolve version（只有 `latest` 才访问 GitHub API）
- Step 2: Install（日志分组 `💾 Install MMock`）
- Step 3: Installation check（日志分组 `🧪 Installation check`）

任何一步抛错都直接向上传播，由 `main.py` 统一标记失败。
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from setup_mmock.config import ActionConfig
from setup_mmock.github.client import GitHubClient
from setup_mmock.infra.cache import CacheBackend
from setup_mmock.infra.cache import DirectoryCache
from setup_mmock.infra.cache import RunnerCacheHandoff
from setup_mmock.infra.download import ReleaseDownloader
from setup_mmock.infra.process import run_process
from setup_mmock.infra.process import which
from setup_mmock.install.checker import CheckerDeps
from setup_mmock.install.checker import check
from setup_mmock.install.distribution import cache_key
from setup_mmock.install.distribution import host_arch
from setup_mmock.install.distribution import host_platform
from setup_mmock.install.distribution import install_dir
from setup_mmock.install.installer import InstallerDeps
from setup_mmock.install.installer import install
from setup_mmock.install.version import resolve_version
from setup_mmock.runner import commands


@dataclass(frozen=True)
class ActionRuntime:
    """一次运行的全部依赖（由 `build_action_runtime` 装配，测试里可直接构造）。"""

    github_client: GitHubClient
    installer: InstallerDeps
    checker: CheckerDeps


@dataclass(frozen=True)
class InstallPlan:
    """安装前就能确定的信息：具体版本、缓存 key、安装目录（给 actions/cache step 用）。"""

    version: str
    cache_key: str
    install_dir: str


def select_cache_backend(config: ActionConfig) -> CacheBackend:
    if config.actions_cache:
        return RunnerCacheHandoff(config.actions_cache_matched_key)
    return DirectoryCache(config.cache_dir)


async def plan_install(config: ActionConfig, github_client: GitHubClient) -> InstallPlan:
    version = await resolve_version(config.version, github_client)
    return InstallPlan(
        version=version,
        cache_key=cache_key(version, host_platform(), host_arch()),
        install_dir=install_dir(config.temp_dir, version),
    )


def build_github_client(config: ActionConfig, http_client: httpx.AsyncClient) -> GitHubClient:
    return GitHubClient(
        api_base_url=str(config.api_url),
        token=config.github_token,
        http_client=http_client,
    )


def build_action_runtime(config: ActionConfig, http_client: httpx.AsyncClient) -> ActionRuntime:
    """把配置和真实的外部依赖（httpx / 本地缓存目录 / 进程 PATH）装配起来。"""
    github_client = build_github_client(config, http_client)
    installer = InstallerDeps(
        cache=select_cache_backend(config),
        downloader=ReleaseDownloader(http_client=http_client, temp_dir=config.temp_dir),
        add_path=commands.add_path,
        temp_dir=config.temp_dir,
        server_url=str(config.server_url),
        platform_name=host_platform(),
        arch=host_arch(),
    )
    checker = CheckerDeps(
        which=which,
        run_process=run_process,
        set_output=commands.set_output,
    )
    return ActionRuntime(github_client=github_client, installer=installer, checker=checker)


async def run_action(config: ActionConfig, runtime: ActionRuntime) -> str:
    """跑一次完整安装，返回校验通过的 mmock 路径。"""
    version = await resolve_version(config.version, runtime.github_client)

    with commands.group("💾 Install MMock"):
        await install(version, runtime.installer)

    with commands.group("🧪 Installation check"):
        return await check(runtime.checker)
