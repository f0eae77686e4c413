"""
composite action 的 prepare step。

在真正安装之前算出 `version` / `cache-key` / `install-dir` 三个 step output，
供 `actions/cache/restore` 与 `actions/cache/save` 使用；安装 step 直接拿解析好的版本，
不会再访问一次 GitHub API。

启动：
  python -m setup_mmock.prepare
"""

from __future__ import annotations

import logging
import os
import sys

import anyio
import httpx

from setup_mmock.config import load_config_from_env
from setup_mmock.install.orchestrator import InstallPlan
from setup_mmock.install.orchestrator import build_github_client
from setup_mmock.install.orchestrator import plan_install
from setup_mmock.runner import commands
from setup_mmock.runner.logging_config import setup_logging

logger = logging.getLogger(__name__)


async def run() -> InstallPlan:
    config = load_config_from_env(os.environ)
    async with httpx.AsyncClient(timeout=httpx.Timeout(30.0)) as http_client:
        plan = await plan_install(config, build_github_client(config, http_client))

    commands.set_output("version", plan.version)
    commands.set_output("cache-key", plan.cache_key)
    commands.set_output("install-dir", plan.install_dir)
    logger.debug(f"Install plan: {plan}")
    return plan


def main() -> int:
    setup_logging(debug=commands.is_debug())
    try:
        anyio.run(run)
    except Exception as exc:
        logger.debug("Prepare failed", exc_info=True)
        return commands.set_failed(str(exc))
    return 0


if __name__ == "__main__":
    sys.exit(main())
