"""Directory API contract.

Why a Protocol:
- Structural contract (duck typing) without rigid inheritance.
- The dispatcher only needs these coroutines, so the real HTTP client and
  in-memory fakes are interchangeable.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import (
    AgentDetail,
    AgentListResponse,
    DepartmentListResponse,
    DepartmentMembersResponse,
    TagListResponse,
    TagMembersResponse,
)


@runtime_checkable
class DirectoryAPI(Protocol):
    """Minimal read surface of the corporate directory.

    Design rules:
    - Every call is async because it does network I/O.
    - Non-zero ``errcode`` values are returned, not raised.
    """

    async def list_agents(self) -> AgentListResponse: ...

    async def get_agent_detail(self, agent_id: int) -> AgentDetail: ...

    async def list_departments(self) -> DepartmentListResponse: ...

    async def get_department_members(
        self, department_id: int, recursive: bool = False
    ) -> DepartmentMembersResponse: ...

    async def list_tags(self) -> TagListResponse: ...

    async def get_tag_members(self, tag_id: int) -> TagMembersResponse: ...
