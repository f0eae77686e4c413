"""
GitHub Actions runner 交互层（workflow commands + 环境文件）。

覆盖本 action 用到的最小子集：
- 读取 input：`INPUT_<NAME>` 环境变量
- 写 output：`$GITHUB_OUTPUT`（heredoc 格式），没有时退回 `::set-output::`
- 修改 PATH：`$GITHUB_PATH` + 当前进程的 `PATH`
- 日志分组：`::group::` / `::endgroup::`
- 失败：`::error::` + 退出码 1

参考：https://docs.github.com/actions/using-workflows/workflow-commands-for-github-actions
"""

from __future__ import annotations

import os
import sys
import uuid
from collections.abc import Iterator, Mapping, MutableMapping
from contextlib import contextmanager
from typing import TextIO


def escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def escape_property(value: str) -> str:
    return escape_data(value).replace(":", "%3A").replace(",", "%2C")


def format_command(command: str, message: str, properties: Mapping[str, str] | None = None) -> str:
    """拼出一条 `::command key=value::message`。"""
    props = ""
    if properties:
        props = " " + ",".join(f"{k}={escape_property(v)}" for k, v in properties.items() if v)
    return f"::{command}{props}::{escape_data(message)}"


def issue_command(
    command: str,
    message: str = "",
    properties: Mapping[str, str] | None = None,
    stream: TextIO | None = None,
) -> None:
    out = stream if stream is not None else sys.stdout
    out.write(format_command(command, message, properties) + os.linesep)
    out.flush()


def input_env_name(name: str) -> str:
    """`github-token` -> `INPUT_GITHUB-TOKEN`（与 @actions/core 的规则一致：只替换空格）。"""
    return f"INPUT_{name.replace(' ', '_').upper()}"


def get_input(environ: Mapping[str, str], name: str, required: bool = False) -> str:
    """
    读取 action input。

    - 值会 strip
    - required 且为空：抛 `ValueError`
    """
    value = environ.get(input_env_name(name), "").strip()
    if required and not value:
        raise ValueError(f"Input required and not supplied: {name}")
    return value


def _append_file_command(path: str, line: str) -> None:
    if not os.path.exists(path):
        raise RuntimeError(f"Missing file at path: {path}")
    with open(path, "a", encoding="utf-8") as f:
        f.write(line + os.linesep)


def _key_value_record(name: str, value: str) -> str:
    """heredoc 记录：分隔符随机生成，并确保不出现在 name/value 里。"""
    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    if delimiter in name or delimiter in value:
        raise ValueError(f"Unexpected input: name or value contains the delimiter {delimiter}")
    return f"{name}<<{delimiter}{os.linesep}{value}{os.linesep}{delimiter}"


def set_output(name: str, value: str, environ: Mapping[str, str] | None = None, stream: TextIO | None = None) -> None:
    env = os.environ if environ is None else environ
    output_file = env.get("GITHUB_OUTPUT", "")
    if output_file:
        _append_file_command(output_file, _key_value_record(name, value))
        return
    out = stream if stream is not None else sys.stdout
    out.write(os.linesep)
    issue_command("set-output", value, {"name": name}, stream=out)


def add_path(
    directory: str,
    environ: MutableMapping[str, str] | None = None,
    stream: TextIO | None = None,
) -> None:
    """
    把目录加到 PATH 最前面：

    - 当前进程：直接改 `environ["PATH"]`（之后 `which`/子进程立刻可见）
    - 后续 step：写 `$GITHUB_PATH`，没有时退回 `::add-path::`
    """
    env = os.environ if environ is None else environ
    path_file = env.get("GITHUB_PATH", "")
    if path_file:
        _append_file_command(path_file, directory)
    else:
        issue_command("add-path", directory, stream=stream)
    current = env.get("PATH", "")
    env["PATH"] = f"{directory}{os.pathsep}{current}" if current else directory


def start_group(name: str, stream: TextIO | None = None) -> None:
    issue_command("group", name, stream=stream)


def end_group(stream: TextIO | None = None) -> None:
    issue_command("endgroup", stream=stream)


@contextmanager
def group(name: str, stream: TextIO | None = None) -> Iterator[None]:
    """日志折叠分组；出错时 endgroup 也会写出，错误信息落在分组外。"""
    start_group(name, stream=stream)
    try:
        yield
    finally:
        end_group(stream=stream)


def set_failed(message: str, stream: TextIO | None = None) -> int:
    """标记 step 失败，返回进程退出码。"""
    issue_command("error", message, stream=stream)
    return 1


def is_debug(environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return env.get("RUNNER_DEBUG", "") == "1"
