from __future__ import annotations

"""
安装流程的错误类型。

约定：
- 这些都是“硬失败”：直接抛出，由 `main.py` 顶层统一 set_failed
- 缓存相关的软失败不在这里（见 `infra/cache.py`）
"""


class SetupMMockError(RuntimeError):
    """所有安装/校验失败的基类。"""

    pass


class UnsupportedPlatformError(SetupMMockError):
    pass


class UnsupportedArchitectureError(SetupMMockError):
    pass


class UnsupportedArchiveFormatError(SetupMMockError):
    pass


class DownloadError(SetupMMockError):
    """下载 release asset 失败（HTTP 状态码 >= 400）。"""

    def __init__(self, uri: str, status_code: int) -> None:
        super().__init__(f"Unexpected HTTP response: {status_code} ({uri})")
        self.uri = uri
        self.status_code = status_code


class BinaryNotFoundError(SetupMMockError):
    pass


class VersionCheckError(SetupMMockError):
    """`mmock -h` 输出里找不到版本 banner。"""

    pass
