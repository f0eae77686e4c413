from __future__ import annotations

import httpx
import pytest

from setup_mmock.dev.mock_github_server import build_mock_github_app
from setup_mmock.github.client import GitHubClient
from setup_mmock.install.version import resolve_latest


@pytest.mark.anyio
async def test_get_latest_release_parses_tag() -> None:
    app = build_mock_github_app(latest_tag="v3.0.5")
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app)) as http_client:
        client = GitHubClient(api_base_url="http://mock-github/", token="t", http_client=http_client)
        release = await client.get_latest_release(owner="jmartin82", repo="mmock")

    assert release.tag_name == "v3.0.5"
    assert release.name == "v3.0.5"


@pytest.mark.anyio
async def test_resolve_latest_strips_v_prefix() -> None:
    app = build_mock_github_app(latest_tag="v3.0.5")
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app)) as http_client:
        client = GitHubClient(api_base_url="http://mock-github", token=None, http_client=http_client)
        assert await resolve_latest(client) == "3.0.5"


@pytest.mark.anyio
async def test_get_latest_release_without_releases_raises() -> None:
    app = build_mock_github_app(latest_tag=None)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app)) as http_client:
        client = GitHubClient(api_base_url="http://mock-github", token=None, http_client=http_client)
        with pytest.raises(RuntimeError, match="GitHub API error 404"):
            await client.get_latest_release(owner="jmartin82", repo="mmock")


@pytest.mark.anyio
@pytest.mark.parametrize(("token", "expected_auth"), [("secret", "Bearer secret"), (None, None), ("", None)])
async def test_authorization_header_only_with_token(token: str | None, expected_auth: str | None) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"tag_name": "v3.0.2"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = GitHubClient(api_base_url="https://api.github.com", token=token, http_client=http_client)
        await client.get_latest_release(owner="jmartin82", repo="mmock")

    assert str(seen[0].url) == "https://api.github.com/repos/jmartin82/mmock/releases/latest"
    assert seen[0].headers.get("Authorization") == expected_auth
    assert seen[0].headers["Accept"] == "application/vnd.github+json"
