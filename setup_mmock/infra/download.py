"""
下载与解压（对应 actions/tool-cache 的 downloadTool / extractTar / extractZip）。

约定：
- 下载走共享的 httpx.AsyncClient（流式写盘，跟随 GitHub 的 302 跳转）
- 写盘与解压都是阻塞 IO：写盘用 anyio.open_file，解压放到 worker thread（anyio.to_thread）
- 解压使用 `data` filter：拒绝绝对路径/越界路径/设备文件
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
import uuid
import zipfile

import anyio
import httpx

from setup_mmock.install.errors import DownloadError

logger = logging.getLogger(__name__)


class ReleaseDownloader:
    def __init__(self, http_client: httpx.AsyncClient, temp_dir: str) -> None:
        self._http_client = http_client
        self._temp_dir = temp_dir

    async def download(self, uri: str, dest: str | None = None) -> str:
        """
        下载到 `dest`（默认 `<temp_dir>/<uuid>`），返回本地路径。

        - 目标文件已存在：报错（不覆盖）
        - HTTP >= 400：抛 `DownloadError`，并删除半成品文件
        """
        path = dest or os.path.join(self._temp_dir, str(uuid.uuid4()))
        if os.path.exists(path):
            raise RuntimeError(f"Destination file path {path} already exists")
        os.makedirs(os.path.dirname(path), exist_ok=True)

        logger.debug(f"Downloading {uri}")
        logger.debug(f"Destination {path}")
        async with self._http_client.stream("GET", uri, follow_redirects=True) as response:
            if response.status_code >= 400:
                await response.aread()
                logger.debug(f"Failed to download from {uri}: {response.status_code} {response.text}")
                raise DownloadError(uri=uri, status_code=response.status_code)
            try:
                async with await anyio.open_file(path, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        await f.write(chunk)
            except (OSError, httpx.HTTPError):
                remove_path(path)
                raise
        return path

    async def extract_tar(self, archive: str, dest: str) -> str:
        await anyio.to_thread.run_sync(_extract_tar_sync, archive, dest)
        return dest

    async def extract_zip(self, archive: str, dest: str) -> str:
        await anyio.to_thread.run_sync(_extract_zip_sync, archive, dest)
        return dest

    async def remove(self, path: str) -> None:
        await anyio.to_thread.run_sync(remove_path, path)


def _extract_tar_sync(archive: str, dest: str) -> None:
    os.makedirs(dest, exist_ok=True)
    with tarfile.open(archive, "r:*") as tar:
        tar.extractall(dest, filter="data")


def _extract_zip_sync(archive: str, dest: str) -> None:
    os.makedirs(dest, exist_ok=True)
    with zipfile.ZipFile(archive) as zf:
        zf.extractall(dest)


def remove_path(path: str) -> None:
    """`rm -rf`：目录递归删除，文件直接删除，不存在则忽略。"""
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    elif os.path.lexists(path):
        os.remove(path)
