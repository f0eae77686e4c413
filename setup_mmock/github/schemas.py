"""
GitHub API response schemas（Pydantic）。

说明：
- 字段只覆盖当前用到的子集（GET /repos/{owner}/{repo}/releases/latest）。
"""

from __future__ import annotations

from pydantic import BaseModel


class GitHubRelease(BaseModel):
    """
    Release 对象（最小结构）。

    tag_name 通常带 `v` 前缀（例如 `v3.0.2`），由调用方负责去掉。
    """

    tag_name: str
    name: str | None = None
