from __future__ import annotations

import dataclasses
import logging
import os
import shutil
import sys
from functools import partial

import httpx
import pytest

from setup_mmock import main as entrypoint
from setup_mmock import prepare
from setup_mmock.config import ActionConfig
from setup_mmock.config import load_config_from_env
from setup_mmock.dev.mock_github_server import build_mock_github_app
from setup_mmock.infra.cache import DirectoryCache
from setup_mmock.infra.cache import RunnerCacheHandoff
from setup_mmock.infra.process import which
from setup_mmock.install import orchestrator
from setup_mmock.install.orchestrator import ActionRuntime
from setup_mmock.install.orchestrator import InstallPlan
from setup_mmock.install.orchestrator import build_action_runtime
from setup_mmock.install.orchestrator import build_github_client
from setup_mmock.install.orchestrator import plan_install
from setup_mmock.install.orchestrator import run_action
from setup_mmock.install.orchestrator import select_cache_backend
from setup_mmock.runner import commands

BASE = "http://mock-github.test"

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="mock release ships a POSIX shell script")


def _config(tmp_path, version: str) -> ActionConfig:
    config = load_config_from_env(
        {
            "INPUT_VERSION": version,
            "GITHUB_API_URL": BASE,
            "GITHUB_SERVER_URL": BASE,
            "SETUP_MMOCK_CACHE_DIR": str(tmp_path / "cache"),
        }
    )
    return config.model_copy(update={"temp_dir": str(tmp_path / "tmp")})


def _runtime(config: ActionConfig, http_client: httpx.AsyncClient, env: dict[str, str]) -> ActionRuntime:
    """真实装配 + 把 PATH/output 指向测试自己的 env，平台固定为 linux/x64。"""
    runtime = build_action_runtime(config=config, http_client=http_client)
    installer = dataclasses.replace(
        runtime.installer,
        add_path=partial(commands.add_path, environ=env),
        platform_name="linux",
        arch="x64",
    )
    checker = dataclasses.replace(
        runtime.checker,
        which=lambda name, must_exist: which(name, must_exist, path=env["PATH"]),
        set_output=partial(commands.set_output, environ=env),
    )
    return dataclasses.replace(runtime, installer=installer, checker=checker)


@pytest.fixture
def runner_env(tmp_path) -> dict[str, str]:
    output_file = tmp_path / "github_output"
    path_file = tmp_path / "github_path"
    output_file.write_text("")
    path_file.write_text("")
    return {"GITHUB_OUTPUT": str(output_file), "GITHUB_PATH": str(path_file), "PATH": ""}


@posix_only
@pytest.mark.anyio
async def test_explicit_version_end_to_end(tmp_path, runner_env: dict[str, str]) -> None:
    app = build_mock_github_app(latest_tag="v9.9.9")
    config = _config(tmp_path, "V3.0.2")
    assert config.version == "3.0.2"

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app)) as http_client:
        bin_path = await run_action(config, _runtime(config, http_client, runner_env))

    target = os.path.join(str(tmp_path / "tmp"), "mmock-3.0.2")
    assert bin_path == os.path.join(target, "mmock")
    assert app.state.downloads == ["jmartin82/mmock/v3.0.2/mmock_Linux_x86_64.tar.gz"]
    assert runner_env["PATH"] == target
    assert (tmp_path / "github_path").read_text().splitlines() == [target]
    output_lines = (tmp_path / "github_output").read_text().splitlines()
    assert output_lines[0].startswith("mmock-bin<<")
    assert output_lines[1] == bin_path
    # 下载的 archive 已删除，temp 目录里只剩安装目录
    assert os.listdir(tmp_path / "tmp") == ["mmock-3.0.2"]


@posix_only
@pytest.mark.anyio
async def test_latest_resolves_to_release_tag(tmp_path, runner_env: dict[str, str]) -> None:
    app = build_mock_github_app(latest_tag="v3.0.5")
    config = _config(tmp_path, "latest")

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app)) as http_client:
        bin_path = await run_action(config, _runtime(config, http_client, runner_env))

    assert bin_path == os.path.join(str(tmp_path / "tmp"), "mmock-3.0.5", "mmock")
    assert app.state.downloads == ["jmartin82/mmock/v3.0.5/mmock_Linux_x86_64.tar.gz"]


@posix_only
@pytest.mark.anyio
async def test_second_run_is_restored_from_cache(tmp_path, runner_env: dict[str, str]) -> None:
    app = build_mock_github_app()
    config = _config(tmp_path, "3.0.2")

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app)) as http_client:
        await run_action(config, _runtime(config, http_client, runner_env))
        shutil.rmtree(tmp_path / "tmp" / "mmock-3.0.2")
        runner_env["PATH"] = ""
        bin_path = await run_action(config, _runtime(config, http_client, runner_env))

    assert len(app.state.downloads) == 1
    assert os.path.exists(bin_path)


@pytest.mark.anyio
async def test_download_failure_propagates(tmp_path, runner_env: dict[str, str]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    config = _config(tmp_path, "3.0.2")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        with pytest.raises(RuntimeError, match="Unexpected HTTP response: 500"):
            await run_action(config, _runtime(config, http_client, runner_env))
    assert runner_env["PATH"] == ""


def test_select_cache_backend(tmp_path) -> None:
    config = _config(tmp_path, "3.0.2")
    assert isinstance(select_cache_backend(config), DirectoryCache)

    handoff = config.model_copy(update={"actions_cache": True, "actions_cache_matched_key": "k"})
    assert isinstance(select_cache_backend(handoff), RunnerCacheHandoff)


@pytest.mark.anyio
async def test_plan_install_resolves_latest_without_downloading(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(orchestrator, "host_platform", lambda: "linux")
    monkeypatch.setattr(orchestrator, "host_arch", lambda: "x64")
    app = build_mock_github_app(latest_tag="v3.0.5")
    config = _config(tmp_path, "latest")

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app)) as http_client:
        plan = await plan_install(config, build_github_client(config, http_client))

    assert plan == InstallPlan(
        version="3.0.5",
        cache_key="mmock-cache-3.0.5-linux-x64",
        install_dir=os.path.join(str(tmp_path / "tmp"), "mmock-3.0.5"),
    )
    assert app.state.downloads == []


@posix_only
@pytest.mark.anyio
async def test_actions_cache_hit_skips_download(tmp_path, runner_env: dict[str, str]) -> None:
    app = build_mock_github_app()
    config = _config(tmp_path, "3.0.2")
    restored = config.model_copy(
        update={"actions_cache": True, "actions_cache_matched_key": "mmock-cache-3.0.2-linux-x64"}
    )

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app)) as http_client:
        # 第一次运行产出安装目录，相当于 actions/cache/restore 已经把它放回原处
        await run_action(config, _runtime(config, http_client, runner_env))
        runner_env["PATH"] = ""
        bin_path = await run_action(restored, _runtime(restored, http_client, runner_env))

    target = os.path.join(str(tmp_path / "tmp"), "mmock-3.0.2")
    assert len(app.state.downloads) == 1
    assert bin_path == os.path.join(target, "mmock")
    assert runner_env["PATH"] == target


@posix_only
@pytest.mark.anyio
async def test_actions_cache_miss_downloads_and_leaves_upload_to_runner(tmp_path, runner_env: dict[str, str]) -> None:
    app = build_mock_github_app()
    config = _config(tmp_path, "3.0.2").model_copy(update={"actions_cache": True})

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app)) as http_client:
        await run_action(config, _runtime(config, http_client, runner_env))

    assert len(app.state.downloads) == 1
    assert not (tmp_path / "cache").exists()


@pytest.fixture
def clean_action_env(monkeypatch: pytest.MonkeyPatch):
    for name in (
        "GITHUB_OUTPUT", "GITHUB_PATH", "RUNNER_TOOL_CACHE", "SETUP_MMOCK_CACHE_DIR", "RUNNER_DEBUG",
        "SETUP_MMOCK_ACTIONS_CACHE", "SETUP_MMOCK_ACTIONS_CACHE_MATCHED_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield monkeypatch
    root.handlers[:] = handlers
    root.setLevel(level)


def test_main_reports_missing_version(clean_action_env, capsys: pytest.CaptureFixture[str]) -> None:
    clean_action_env.delenv("INPUT_VERSION", raising=False)
    assert entrypoint.main() == 1
    assert "::error::Input required and not supplied: version" in capsys.readouterr().out


def test_main_reports_unsupported_os(clean_action_env, capsys: pytest.CaptureFixture[str]) -> None:
    clean_action_env.setenv("INPUT_VERSION", "v3.0.2")
    clean_action_env.setattr(orchestrator, "host_platform", lambda: "freebsd")
    clean_action_env.setattr(orchestrator, "host_arch", lambda: "x64")

    assert entrypoint.main() == 1
    out = capsys.readouterr().out
    assert "::group::💾 Install MMock" in out
    assert "::warning::Cache restore failed" in out
    assert "::error::Unsupported OS (platform)" in out


def _read_outputs(path) -> dict[str, str]:
    lines = path.read_text().splitlines()
    outputs: dict[str, str] = {}
    for index, line in enumerate(lines):
        if "<<ghadelimiter_" in line:
            outputs[line.split("<<", 1)[0]] = lines[index + 1]
    return outputs


def test_prepare_publishes_install_plan(clean_action_env, tmp_path) -> None:
    output_file = tmp_path / "github_output"
    output_file.write_text("")
    clean_action_env.setenv("GITHUB_OUTPUT", str(output_file))
    clean_action_env.setenv("INPUT_VERSION", "v3.0.2")
    clean_action_env.setattr(orchestrator, "host_platform", lambda: "darwin")
    clean_action_env.setattr(orchestrator, "host_arch", lambda: "x64")

    assert prepare.main() == 0
    outputs = _read_outputs(output_file)
    assert outputs["version"] == "3.0.2"
    assert outputs["cache-key"] == "mmock-cache-3.0.2-darwin-x64"
    assert os.path.basename(outputs["install-dir"]) == "mmock-3.0.2"


def test_prepare_reports_missing_version(clean_action_env, capsys: pytest.CaptureFixture[str]) -> None:
    clean_action_env.delenv("INPUT_VERSION", raising=False)
    assert prepare.main() == 1
    assert "::error::Input required and not supplied: version" in capsys.readouterr().out
