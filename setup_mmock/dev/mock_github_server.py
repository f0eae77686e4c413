"""
本地 Mock GitHub server（只覆盖本 action 用到的两个接口）。

用途：
- 在没有外网/没有 token 的情况下，本地跑通：
  latest release -> download asset -> extract -> `mmock -h`
- 单元测试里通过 `httpx.ASGITransport` 直接挂载（不用起端口）

接口：
- GET /repos/{owner}/{repo}/releases/latest
- GET /{owner}/{repo}/releases/download/{tag}/{asset}（现场生成 tar.gz / zip）

启动：
  python -m setup_mmock.dev.mock_github_server
  GITHUB_API_URL=http://127.0.0.1:9003 GITHUB_SERVER_URL=http://127.0.0.1:9003 \
  INPUT_VERSION=latest python -m setup_mmock.main
"""

from __future__ import annotations

import io
import tarfile
import time
import zipfile

import uvicorn
from fastapi import FastAPI
from fastapi import HTTPException
from fastapi import Response


def _posix_script(version: str) -> bytes:
    return f'#!/bin/sh\necho "MMock v{version}"\necho "Usage of mmock:"\nexit 2\n'.encode("utf-8")


def _windows_script(version: str) -> bytes:
    return f"@echo off\r\necho MMock v{version}\r\necho Usage of mmock:\r\n".encode("utf-8")


def build_tar_gz(files: dict[str, bytes], mode: int = 0o755) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name=name)
            info.size = len(content)
            info.mode = mode
            info.mtime = int(time.time())
            tar.addfile(info, io.BytesIO(content))
    return buf.getvalue()


def build_zip(files: dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buf.getvalue()


def build_release_asset(asset: str, version: str) -> bytes:
    """按 asset 后缀生成一个只包含 mmock 假脚本的发行包。"""
    if asset.endswith(".tar.gz"):
        return build_tar_gz({"mmock": _posix_script(version), "README.md": b"mock release\n"})
    if asset.endswith(".zip"):
        return build_zip({"mmock.cmd": _windows_script(version), "README.md": b"mock release\n"})
    raise ValueError(f"Unsupported asset: {asset}")


def build_mock_github_app(latest_tag: str | None = "v3.0.5") -> FastAPI:
    """
    - latest_tag: `releases/latest` 返回的 tag；None 表示仓库没有 release（404）
    """
    app = FastAPI(title="Mock GitHub API", version="0.1.0")
    app.state.downloads = []

    @app.get("/repos/{owner}/{repo}/releases/latest")
    async def get_latest_release(owner: str, repo: str) -> dict[str, object]:
        if latest_tag is None:
            raise HTTPException(status_code=404, detail="Not Found")
        return {
            "tag_name": latest_tag,
            "name": latest_tag,
            "html_url": f"https://github.com/{owner}/{repo}/releases/tag/{latest_tag}",
            "draft": False,
            "prerelease": False,
            "assets": [],
        }

    @app.get("/{owner}/{repo}/releases/download/{tag}/{asset}")
    async def download_release_asset(owner: str, repo: str, tag: str, asset: str) -> Response:
        if not asset.startswith("mmock_") or not asset.endswith((".tar.gz", ".zip")):
            raise HTTPException(status_code=404, detail="Not Found")
        app.state.downloads.append(f"{owner}/{repo}/{tag}/{asset}")
        content = build_release_asset(asset=asset, version=tag.removeprefix("v"))
        return Response(content=content, media_type="application/octet-stream")

    @app.get("/__debug__/downloads")
    async def debug_downloads() -> dict[str, object]:
        return {"count": len(app.state.downloads), "downloads": app.state.downloads}

    return app


app = build_mock_github_app()


def main() -> None:
    uvicorn.run(app, host="127.0.0.1", port=9003)


if __name__ == "__main__":
    main()
