"""
发行包定位：平台/架构识别、asset 命名表、下载 URI、缓存 key。

upstream 从 3.0.1 开始换了 release asset 的命名方式：
- epoch 1（< 3.0.1）：`mmock_<version>_linux_64-bit.tar.gz`
- epoch 2（>= 3.0.1）：`mmock_Linux_x86_64.tar.gz`

参考：https://github.com/jmartin82/mmock/releases
"""

from __future__ import annotations

import os
import platform
import re
import sys
from typing import Literal

from packaging.version import Version
from pydantic import BaseModel

from setup_mmock.install.errors import UnsupportedArchitectureError
from setup_mmock.install.errors import UnsupportedArchiveFormatError
from setup_mmock.install.errors import UnsupportedPlatformError
from setup_mmock.install.version import MMOCK_OWNER
from setup_mmock.install.version import MMOCK_REPO

ArchiveKind = Literal["tar.gz", "zip"]

DEFAULT_SERVER_URL = "https://github.com"

# 第一个使用新命名方式的版本
NAMING_EPOCH_2_SINCE = Version("3.0.1")

_PLATFORM_ERRORS: dict[str, str] = {
    "linux": "Unsupported linux architecture",
    "darwin": "Unsupported MacOS architecture",
    "win32": "Unsupported windows architecture",
}

# (platform, arch, epoch) -> asset 文件名模板
_ASSET_NAMES: dict[tuple[str, str, int], str] = {
    ("linux", "x64", 1): "mmock_{version}_linux_64-bit.tar.gz",
    ("linux", "x64", 2): "mmock_Linux_x86_64.tar.gz",
    ("darwin", "x64", 1): "mmock_{version}_macOS_64-bit.tar.gz",
    ("darwin", "x64", 2): "mmock_macOS_x86_64.tar.gz",
    ("win32", "x64", 1): "mmock_{version}_windows_64-bit.tar.gz",
    ("win32", "x64", 2): "mmock_Windows_x86_64.zip",
}

_MACHINE_ARCH: dict[str, str] = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "ia32",
    "i686": "ia32",
    "x86": "ia32",
}


class DownloadDescriptor(BaseModel):
    uri: str
    archive_kind: ArchiveKind


def host_platform() -> str:
    """`sys.platform` -> runner 平台名：linux / darwin / win32（其他如 `freebsd14` -> `freebsd`）。"""
    if sys.platform.startswith("linux"):
        return "linux"
    return re.sub(r"\d+$", "", sys.platform)


def host_arch() -> str:
    """`platform.machine()` -> runner 架构名：x64 / arm64 / arm / ia32。"""
    machine = platform.machine().lower()
    if machine in _MACHINE_ARCH:
        return _MACHINE_ARCH[machine]
    if machine.startswith("arm"):
        return "arm"
    return machine


def naming_epoch(version: str) -> int:
    """版本非法时 `packaging` 抛 `InvalidVersion`（ValueError 子类）。"""
    return 1 if Version(version) < NAMING_EPOCH_2_SINCE else 2


def asset_name(platform_name: str, arch: str, version: str) -> str:
    """
    查表得到 asset 文件名。

    检查顺序固定：先平台（Unsupported OS），再架构；只支持 x64。
    """
    if platform_name not in _PLATFORM_ERRORS:
        raise UnsupportedPlatformError("Unsupported OS (platform)")
    template = _ASSET_NAMES.get((platform_name, arch, naming_epoch(version)))
    if template is None:
        raise UnsupportedArchitectureError(_PLATFORM_ERRORS[platform_name])
    return template.format(version=version)


def archive_kind_for(uri: str) -> ArchiveKind:
    if uri.endswith("tar.gz"):
        return "tar.gz"
    if uri.endswith("zip"):
        return "zip"
    raise UnsupportedArchiveFormatError("Unsupported distributive format")


def release_download_uri(platform_name: str, arch: str, version: str, server_url: str = DEFAULT_SERVER_URL) -> str:
    name = asset_name(platform_name, arch, version)
    return f"{server_url.rstrip('/')}/{MMOCK_OWNER}/{MMOCK_REPO}/releases/download/v{version}/{name}"


def download_descriptor(
    platform_name: str,
    arch: str,
    version: str,
    server_url: str = DEFAULT_SERVER_URL,
) -> DownloadDescriptor:
    uri = release_download_uri(platform_name, arch, version, server_url=server_url)
    return DownloadDescriptor(uri=uri, archive_kind=archive_kind_for(uri))


def cache_key(version: str, platform_name: str, arch: str) -> str:
    return f"mmock-cache-{version}-{platform_name}-{arch}"


def install_dir(temp_root: str, version: str) -> str:
    return os.path.join(temp_root, f"mmock-{version}")
