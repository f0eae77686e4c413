"""
跨 job 的目录缓存（key -> 一组路径的快照）。

当前提供：
- `CacheBackend` Protocol：restore/save 两个异步接口，失败统一抛 `CacheBackendError`
- `DirectoryCache`：本地目录实现（每个 entry 一个 tar.gz），适合 self-hosted runner
  或挂载了持久卷的环境
- `RunnerCacheHandoff`：hosted runner 上对接 actions/cache 的 restore/save step
- `restore_cache` / `save_cache`：把后端异常收敛为“软失败”（只告警，不中断安装）

entry 的身份 = key + 路径列表摘要：同 key 不同路径视为不同 entry（与 actions/cache 一致）。
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
import shutil
import tarfile
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Protocol

import anyio

logger = logging.getLogger(__name__)

CacheStatus = Literal["hit", "miss", "error"]

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class CacheBackendError(RuntimeError):
    """缓存后端不可用/读写失败。调用方只告警，不中断流程。"""

    pass


class CacheUnavailableError(CacheBackendError):
    pass


class CacheEntryExistsError(CacheBackendError):
    pass


class CacheBackend(Protocol):
    """缓存后端接口：restore 命中返回 key，未命中返回 None。"""

    async def restore(self, paths: Sequence[str], key: str) -> str | None: ...

    async def save(self, paths: Sequence[str], key: str) -> None: ...


@dataclass(frozen=True)
class CacheLookup:
    """一次 restore 的结果：命中 / 未命中 / 后端出错（与未命中区分开记录）。"""

    status: CacheStatus
    key: str
    error: str | None = None

    @property
    def hit(self) -> bool:
        return self.status == "hit"


def _paths_digest(paths: Sequence[str]) -> str:
    hasher = hashlib.sha256()
    for p in paths:
        hasher.update(os.path.abspath(p).encode("utf-8"))
        hasher.update(b"\x00")
    return hasher.hexdigest()[:16]


class DirectoryCache:
    """
    本地目录缓存。

    布局：`<root>/<key>-<paths digest>.tar.gz`，tar 内第 i 个路径存为 `i/`。
    `root` 为 None 表示没有配置缓存目录：restore/save 都抛 `CacheUnavailableError`。
    """

    def __init__(self, root: str | None) -> None:
        self._root = Path(root) if root else None

    def entry_path(self, paths: Sequence[str], key: str) -> Path:
        root = self._require_root()
        safe_key = _UNSAFE_KEY_CHARS.sub("_", key)
        return root / f"{safe_key}-{_paths_digest(paths)}.tar.gz"

    def _require_root(self) -> Path:
        if self._root is None:
            raise CacheUnavailableError("Cache directory is not configured; caching is disabled")
        return self._root

    async def restore(self, paths: Sequence[str], key: str) -> str | None:
        return await anyio.to_thread.run_sync(self._restore_sync, list(paths), key)

    async def save(self, paths: Sequence[str], key: str) -> None:
        await anyio.to_thread.run_sync(self._save_sync, list(paths), key)

    def _restore_sync(self, paths: list[str], key: str) -> str | None:
        entry = self.entry_path(paths, key)
        try:
            if not entry.is_file():
                return None
        except OSError as exc:
            raise CacheBackendError(f"Failed to access cache entry {entry.name}: {exc}") from exc
        try:
            with tempfile.TemporaryDirectory(dir=entry.parent) as staging:
                with tarfile.open(entry, "r:gz") as tar:
                    tar.extractall(staging, filter="data")
                for index, target in enumerate(paths):
                    _copy_into_place(Path(staging) / str(index), Path(target))
        except (tarfile.TarError, EOFError) as exc:
            # 损坏的 entry 删掉，下一次 save 才能写入新的
            _discard_entry(entry)
            raise CacheBackendError(f"Cache entry {entry.name} is corrupted and was discarded: {exc}") from exc
        except OSError as exc:
            raise CacheBackendError(f"Failed to restore cache entry {entry.name}: {exc}") from exc
        return key

    def _save_sync(self, paths: list[str], key: str) -> None:
        entry = self.entry_path(paths, key)
        try:
            exists = entry.exists()
        except OSError as exc:
            raise CacheBackendError(f"Failed to access cache entry {entry.name}: {exc}") from exc
        if exists:
            raise CacheEntryExistsError(f"Unable to reserve cache with key {key}, another entry already exists")
        missing = [p for p in paths if not os.path.exists(p)]
        if missing:
            raise CacheBackendError(f"Path Validation Error: path(s) specified for caching do not exist: {missing}")
        partial = entry.with_name(entry.name + ".partial")
        try:
            entry.parent.mkdir(parents=True, exist_ok=True)
            with tarfile.open(partial, "w:gz") as tar:
                for index, p in enumerate(paths):
                    tar.add(p, arcname=str(index))
            os.replace(partial, entry)
        except (OSError, tarfile.TarError) as exc:
            partial.unlink(missing_ok=True)
            raise CacheBackendError(f"Failed to save cache entry {entry.name}: {exc}") from exc


class RunnerCacheHandoff:
    """
    hosted runner 上的缓存：真正的上传/下载由 composite action 里的
    `actions/cache/restore` / `actions/cache/save` step 完成，这里只负责对接结果。

    - restore：上一个 step 命中的 key 与本次 key 相同，且路径都已就位 -> hit
    - save：不做事（上传由后续的 `actions/cache/save` step 完成）
    """

    def __init__(self, matched_key: str | None) -> None:
        self._matched_key = matched_key or None

    async def restore(self, paths: Sequence[str], key: str) -> str | None:
        if self._matched_key != key:
            return None
        missing = [p for p in paths if not os.path.exists(p)]
        if missing:
            raise CacheBackendError(f"Cache {key} was restored but path(s) are missing: {missing}")
        return key

    async def save(self, paths: Sequence[str], key: str) -> None:
        logger.debug(f"Cache upload for key {key} is left to the actions/cache/save step")


def _discard_entry(entry: Path) -> None:
    try:
        entry.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning(f"Failed to discard corrupted cache entry {entry.name}: {exc}")


def _copy_into_place(source: Path, target: Path) -> None:
    if source.is_dir():
        shutil.copytree(source, target, dirs_exist_ok=True)
        return
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, target)


async def restore_cache(backend: CacheBackend, paths: Sequence[str], key: str) -> CacheLookup:
    try:
        matched = await backend.restore(paths, key)
    except CacheBackendError as exc:
        logger.warning(f"Cache restore failed: {exc}")
        return CacheLookup(status="error", key=key, error=str(exc))
    if matched is None:
        logger.debug(f"Cache not found for key: {key}")
        return CacheLookup(status="miss", key=key)
    return CacheLookup(status="hit", key=matched)


async def save_cache(backend: CacheBackend, paths: Sequence[str], key: str) -> bool:
    """保存失败只告警，返回是否保存成功。"""
    try:
        await backend.save(paths, key)
    except CacheBackendError as exc:
        logger.warning(f"Cache save failed: {exc}")
        return False
    logger.debug(f"Cache saved with key: {key}")
    return True
