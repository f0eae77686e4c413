"""
Installer：缓存命中则直接复用，未命中则下载 + 解压 + 回写缓存，最后加入 PATH。

流程：
restore cache -> (miss) download -> extract -> rm archive -> save cache -> add to PATH
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from setup_mmock.infra.cache import CacheBackend
from setup_mmock.infra.cache import restore_cache
from setup_mmock.infra.cache import save_cache
from setup_mmock.infra.download import ReleaseDownloader
from setup_mmock.install.distribution import cache_key
from setup_mmock.install.distribution import download_descriptor
from setup_mmock.install.distribution import install_dir
from setup_mmock.install.errors import UnsupportedArchiveFormatError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallerDeps:
    """Installer 的外部依赖（便于测试时替换成 fake）。"""

    cache: CacheBackend
    downloader: ReleaseDownloader
    add_path: Callable[[str], None]
    temp_dir: str
    server_url: str
    platform_name: str
    arch: str


@dataclass(frozen=True)
class InstallOutcome:
    version: str
    install_dir: str
    cache_key: str
    restored_from_cache: bool


async def install(version: str, deps: InstallerDeps) -> InstallOutcome:
    path_to_install = install_dir(deps.temp_dir, version)
    key = cache_key(version, deps.platform_name, deps.arch)

    logger.info(f"Version to install: {version} (target directory: {path_to_install})")

    lookup = await restore_cache(deps.cache, [path_to_install], key)
    if lookup.hit:
        logger.info("👌 MMock restored from cache")
    else:
        await _download_and_extract(version, path_to_install, deps)
        await save_cache(deps.cache, [path_to_install], key)

    deps.add_path(path_to_install)
    return InstallOutcome(
        version=version,
        install_dir=path_to_install,
        cache_key=key,
        restored_from_cache=lookup.hit,
    )


async def _download_and_extract(version: str, path_to_install: str, deps: InstallerDeps) -> None:
    descriptor = download_descriptor(deps.platform_name, deps.arch, version, server_url=deps.server_url)
    archive = await deps.downloader.download(descriptor.uri)

    if descriptor.archive_kind == "tar.gz":
        await deps.downloader.extract_tar(archive, path_to_install)
    elif descriptor.archive_kind == "zip":
        await deps.downloader.extract_zip(archive, path_to_install)
    else:
        raise UnsupportedArchiveFormatError("Unsupported distributive format")

    await deps.downloader.remove(archive)
