"""
安装后校验：PATH 里能找到 mmock，且 `mmock -h` 的输出带版本 banner。
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from setup_mmock.infra.process import ProcessOutput
from setup_mmock.install.errors import BinaryNotFoundError
from setup_mmock.install.errors import VersionCheckError

logger = logging.getLogger(__name__)

MMOCK_BINARY = "mmock"
OUTPUT_NAME = "mmock-bin"
BANNER_MARKER = "mmock v"


@dataclass(frozen=True)
class CheckerDeps:
    which: Callable[[str, bool], str]
    run_process: Callable[[str, Sequence[str], bool], Awaitable[ProcessOutput]]
    set_output: Callable[[str, str], None]


async def check(deps: CheckerDeps) -> str:
    """返回校验通过的 mmock 路径，并写到 step output `mmock-bin`。"""
    bin_path = deps.which(MMOCK_BINARY, True)
    if not bin_path:
        raise BinaryNotFoundError("mmock binary file not found in $PATH")

    result = await deps.run_process(bin_path, ["-h"], True)
    if BANNER_MARKER not in result.output.lower():
        raise VersionCheckError(f"The output does not contain the required substring: {result.output}")

    deps.set_output(OUTPUT_NAME, bin_path)
    logger.info(f"MMock installed: {bin_path}")
    return bin_path
