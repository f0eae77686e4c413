"""
Action 入口。

这里做三件事：
- 加载配置（严格校验 inputs，缺 version 直接失败）
- 组装外部依赖（HTTP Client / 缓存 / PATH / 进程执行）
- 跑 orchestrator，并作为**唯一**的顶层错误处理点：任何未处理异常 -> set_failed + 退出码 1

注意：
- 业务流程不写在这里（由 `install/orchestrator.py` 负责）
- `httpx.AsyncClient` 在整个运行期间复用（GitHub API 与下载共用）

启动：
  python -m setup_mmock.main
"""

from __future__ import annotations

import logging
import os
import sys

import anyio
import httpx

from setup_mmock.config import load_config_from_env
from setup_mmock.install.orchestrator import build_action_runtime
from setup_mmock.install.orchestrator import run_action
from setup_mmock.runner import commands
from setup_mmock.runner.logging_config import setup_logging

logger = logging.getLogger(__name__)


async def run() -> None:
    config = load_config_from_env(os.environ)
    async with httpx.AsyncClient(timeout=httpx.Timeout(30.0)) as http_client:
        runtime = build_action_runtime(config=config, http_client=http_client)
        await run_action(config=config, runtime=runtime)


def main() -> int:
    setup_logging(debug=commands.is_debug())
    try:
        anyio.run(run)
    except Exception as exc:
        logger.debug("Action failed", exc_info=True)
        return commands.set_failed(str(exc))
    return 0


if __name__ == "__main__":
    sys.exit(main())
