from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass

import anyio

from setup_mmock.install.errors import BinaryNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessOutput:
    exit_code: int
    output: str


def which(name: str, must_exist: bool = False, path: str | None = None) -> str:
    """在 PATH 里找可执行文件；找不到时返回空串，`must_exist=True` 则抛错。"""
    found = shutil.which(name, path=path)
    if found:
        return found
    if must_exist:
        raise BinaryNotFoundError(f"{name} binary file not found in $PATH")
    return ""


async def run_process(command: str, args: Sequence[str], ignore_return_code: bool = False) -> ProcessOutput:
    """
    静默执行命令，stdout + stderr 合并到同一个 buffer（顺序不重要）。

    - ignore_return_code=False 且退出码非 0：抛 `RuntimeError`
    """
    cmd = [command, *args]
    logger.debug(f"Running: {' '.join(cmd)}")
    result = await anyio.run_process(cmd, check=False, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    output = result.stdout.decode("utf-8", errors="replace") + result.stderr.decode("utf-8", errors="replace")
    if result.returncode != 0 and not ignore_return_code:
        raise RuntimeError(f"The process '{command}' failed with exit code {result.returncode}")
    return ProcessOutput(exit_code=result.returncode, output=output)
