"""
日志配置：把标准 `logging` 的输出渲染成 workflow commands。

- DEBUG   -> `::debug::`（runner 默认隐藏，开启 step debug 才可见）
- INFO    -> 原样输出
- WARNING -> `::warning::`（会出现在 job 的 annotations 里）
- ERROR+  -> `::error::`

各模块照常 `logger = logging.getLogger(__name__)` 即可。
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from setup_mmock.runner.commands import format_command

_NOISY_LOGGERS = ("httpx", "httpcore")


class WorkflowCommandFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if record.levelno >= logging.ERROR:
            return format_command("error", message)
        if record.levelno >= logging.WARNING:
            return format_command("warning", message)
        if record.levelno >= logging.INFO:
            return message
        return format_command("debug", message)


def setup_logging(debug: bool = False, stream: TextIO | None = None) -> None:
    """
    配置整个进程的 logging（入口调用一次）。

    - root 始终是 DEBUG：是否展示由 runner 决定
    - httpx/httpcore 只在 `debug=True`（RUNNER_DEBUG=1）时放开
    """
    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(WorkflowCommandFormatter("%(message)s"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)
