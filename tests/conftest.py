"""Shared fixtures: an in-memory directory and a fake WeCom HTTP API."""

from __future__ import annotations

import asyncio
import os
import sys
import time
from typing import Any, Callable

import httpx
import pytest

# Make ``src/`` importable when the project is not installed (mirrors the
# ``pythonpath`` setting in pyproject.toml).
SRC_DIR = os.path.join(os.path.abspath(os.path.dirname(__file__)), os.pardir, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from core.domain.models import (  # noqa: E402
    AgentBasic,
    AgentDetail,
    AgentListResponse,
    Department,
    DepartmentListResponse,
    DepartmentMember,
    DepartmentMembersResponse,
    Tag,
    TagListResponse,
    TagMember,
    TagMembersResponse,
)
from core.errors import TransportError  # noqa: E402

GOOD_SECRET = "good-secret"
TOKEN = "TOKEN-123"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory) -> None:
    """Keep WX_* variables and any project .env out of the tests."""

    for key in list(os.environ):
        if key.upper().startswith("WX_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path_factory.mktemp("cwd"))


def member(user_id: str, name: str, department: int) -> DepartmentMember:
    return DepartmentMember(user_id=user_id, name=name, department=[department])


class FakeDirectory:
    """In-memory ``DirectoryAPI`` with failure injection and call timing."""

    def __init__(
        self,
        *,
        departments: list[Department] | None = None,
        tags: list[Tag] | None = None,
        agents: list[AgentBasic] | None = None,
        tag_members: dict[int, TagMembersResponse] | None = None,
        failing_departments: set[int] | None = None,
        failing_tags: set[int] | None = None,
        failing_lists: set[str] | None = None,
        call_latency: float = 0.0,
    ) -> None:
        self.departments = departments or []
        self.tags = tags or []
        self.agents = agents or []
        self.tag_members = tag_members or {}
        self.failing_departments = failing_departments or set()
        self.failing_tags = failing_tags or set()
        self.failing_lists = failing_lists or set()
        self.call_latency = call_latency
        self.department_calls: list[tuple[int, bool, float]] = []
        self.tag_calls: list[int] = []
        self.detail_calls: list[int] = []

    def _maybe_fail(self, name: str) -> None:
        if name in self.failing_lists:
            raise TransportError(f"GET {name} failed: ConnectError('boom')")

    async def list_agents(self) -> AgentListResponse:
        self._maybe_fail("agents")
        return AgentListResponse(code=0, msg="ok", agents=self.agents)

    async def get_agent_detail(self, agent_id: int) -> AgentDetail:
        self.detail_calls.append(agent_id)
        return AgentDetail(code=0, msg="ok", agent_id=agent_id, description=f"agent {agent_id}")

    async def list_departments(self) -> DepartmentListResponse:
        self._maybe_fail("departments")
        return DepartmentListResponse(code=0, msg="ok", departments=self.departments)

    async def get_department_members(
        self, department_id: int, recursive: bool = False
    ) -> DepartmentMembersResponse:
        self.department_calls.append((department_id, recursive, time.monotonic()))
        if self.call_latency:
            await asyncio.sleep(self.call_latency)
        if department_id in self.failing_departments:
            raise TransportError(f"GET user/list failed for {department_id}")
        return DepartmentMembersResponse(
            code=0,
            msg="ok",
            members=[member(f"u{department_id}", f"User {department_id}", department_id)],
        )

    async def list_tags(self) -> TagListResponse:
        self._maybe_fail("tags")
        return TagListResponse(code=0, msg="ok", tags=self.tags)

    async def get_tag_members(self, tag_id: int) -> TagMembersResponse:
        self.tag_calls.append(tag_id)
        if tag_id in self.failing_tags:
            raise TransportError(f"GET tag/get failed for {tag_id}")
        return self.tag_members.get(tag_id, TagMembersResponse(code=0, msg="ok"))


def tag_members(tag_id: int, *user_ids: str, code: int = 0) -> TagMembersResponse:
    return TagMembersResponse(
        code=code,
        msg="ok" if code == 0 else "error",
        tag_name=f"tag{tag_id}",
        members=[TagMember(user_id=u, name=u.upper()) for u in user_ids],
    )


def _json(payload: dict[str, Any]) -> httpx.Response:
    return httpx.Response(200, json=payload)


def directory_handler(
    *,
    departments: list[dict[str, Any]] | None = None,
    tags: list[dict[str, Any]] | None = None,
    tag_users: dict[int, list[dict[str, Any]]] | None = None,
) -> Callable[[httpx.Request], httpx.Response]:
    """Build a MockTransport handler emulating the WeCom endpoints."""

    departments = departments if departments is not None else [
        {"id": 1, "name": "HR", "parentid": 0, "order": 100},
        {"id": 2, "name": "R&D/Sec", "parentid": 1, "order": 200},
    ]
    tags = tags if tags is not None else []
    tag_users = tag_users or {}

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/cgi-bin/")
        params = request.url.params

        if path == "gettoken":
            if params.get("corpsecret") == GOOD_SECRET:
                return _json({"errcode": 0, "errmsg": "ok", "access_token": TOKEN, "expires_in": 7200})
            return _json({"errcode": 40001, "errmsg": "invalid credential"})

        if params.get("access_token") != TOKEN:
            return _json({"errcode": 40014, "errmsg": "invalid access_token"})

        if path == "agent/list":
            return _json({"errcode": 0, "errmsg": "ok", "agentlist": [{"agentid": 1000002, "name": "Portal"}]})
        if path == "department/list":
            return _json({"errcode": 0, "errmsg": "ok", "department": departments})
        if path == "user/list":
            dept_id = int(params["department_id"])
            return _json(
                {
                    "errcode": 0,
                    "errmsg": "ok",
                    "userlist": [
                        {"userid": f"user{dept_id}", "name": f"User {dept_id}", "department": [dept_id]}
                    ],
                }
            )
        if path == "tag/list":
            return _json({"errcode": 0, "errmsg": "ok", "taglist": tags})
        if path == "tag/get":
            tag_id = int(params["tagid"])
            return _json(
                {
                    "errcode": 0,
                    "errmsg": "ok",
                    "tagname": f"tag{tag_id}",
                    "userlist": tag_users.get(tag_id, []),
                    "partylist": [],
                }
            )
        return httpx.Response(404, text="not found")

    return handler


@pytest.fixture
def mock_api(monkeypatch: pytest.MonkeyPatch) -> Callable[..., None]:
    """Route every client built by ``DirectoryClient.configure`` to a fake API."""

    def install(handler: Callable[[httpx.Request], httpx.Response] | None = None) -> None:
        transport = httpx.MockTransport(handler or directory_handler())

        def fake_build(settings: Any = None, **kwargs: Any) -> httpx.AsyncClient:
            return httpx.AsyncClient(transport=transport)

        monkeypatch.setattr("adapters.directory_client.build_async_client", fake_build)

    return install
