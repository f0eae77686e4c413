"""
版本解析：输入规范化 + `latest` 解析为具体 release。
"""

from __future__ import annotations

import logging

from setup_mmock.github.client import GitHubClient

logger = logging.getLogger(__name__)

MMOCK_OWNER = "jmartin82"
MMOCK_REPO = "mmock"

LATEST = "latest"


def normalize_version(raw: str) -> str:
    """去掉最多一个前导 `v`/`V`：`v3.0.2` -> `3.0.2`，`vv1` -> `v1`。"""
    if raw[:1] in ("v", "V"):
        return raw[1:]
    return raw


def is_latest(version: str) -> bool:
    return version.lower() == LATEST


async def resolve_latest(github_client: GitHubClient) -> str:
    """查询 upstream 最新 release 的 tag，并去掉 `v` 前缀。"""
    release = await github_client.get_latest_release(owner=MMOCK_OWNER, repo=MMOCK_REPO)
    version = normalize_version(release.tag_name)
    logger.debug(f"Latest MMock release: {release.name or release.tag_name} ({release.tag_name} -> {version})")
    return version


async def resolve_version(version: str, github_client: GitHubClient) -> str:
    """
    输入版本 -> 具体版本。

    只有输入（不区分大小写）等于 `latest` 时才会访问 GitHub API。
    """
    if is_latest(version):
        logger.debug("Requesting latest MMock version...")
        return await resolve_latest(github_client)
    return version
