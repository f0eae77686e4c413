"""
GitHub API 客户端（外部系统连接器）。

约定：
- 这里只做 HTTP 调用 + 错误处理 + schema 校验
- 出错直接抛错（不要吞），由顶层统一标记 step 失败
- 不做重试：限流等行为交给 httpx / GitHub 自身
"""

from __future__ import annotations

import logging

import httpx

from setup_mmock.github.schemas import GitHubRelease

logger = logging.getLogger(__name__)


class GitHubClient:
    """最小 GitHub API client（只支持 get latest release）。"""

    def __init__(self, api_base_url: str, token: str | None, http_client: httpx.AsyncClient) -> None:
        """
        - api_base_url: 例如 `https://api.github.com`（GHES 为 `https://host/api/v3`）
        - token: 可为空（匿名调用，限流更严格）
        - http_client: 复用的 httpx.AsyncClient
        """
        self._api_base_url = api_base_url.rstrip("/")
        self._token = token
        self._http_client = http_client

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def get_latest_release(self, owner: str, repo: str) -> GitHubRelease:
        """
        获取最新发布的 release（不含 draft / prerelease）。

        仓库没有任何 release 时 GitHub 返回 404，这里按错误处理。
        """
        url = f"{self._api_base_url}/repos/{owner}/{repo}/releases/latest"
        logger.debug(f"GET {url}")
        response = await self._http_client.get(url, headers=self._headers())
        if response.status_code >= 400:
            raise RuntimeError(f"GitHub API error {response.status_code}: {response.text}")
        return GitHubRelease.model_validate(response.json())
