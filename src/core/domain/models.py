"""Domain models (Pydantic v2).

Why Pydantic in the domain:
- Strict validation of every directory payload at the edge, so a malformed
  body surfaces as a decode error instead of a half-filled dict.
- Field aliases keep the API's wire names (``errcode``, ``userlist``...) out of
  the code while the dumped JSON still mirrors the API byte for byte.

Note:
- These models describe *what* the directory returns, not *how* it is fetched.
- Error bodies (``{"errcode": 40014, "errmsg": ...}``) decode into any response
  model: list fields default to empty and callers read ``code`` themselves.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class WireModel(BaseModel):
    """Common config: accept wire or Python names, ignore unknown fields."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict using the API's field names."""

        return self.model_dump(mode="json", by_alias=True)


class ApiResponse(WireModel):
    code: int | None = Field(
        default=None,
        alias="errcode",
        description="API error code; 0 means success.",
    )
    msg: str | None = Field(
        default=None,
        alias="errmsg",
        description="API error message.",
    )

    @property
    def is_success(self) -> bool:
        return self.code == 0


class TokenResponse(ApiResponse):
    access_token: str | None = None
    expires_in: int | None = None

    @property
    def is_success(self) -> bool:
        return self.access_token is not None


class AgentBasic(WireModel):
    id: int = Field(..., alias="agentid")
    name: str
    square_logo_url: str | None = None
    round_logo_url: str | None = None


class AgentListResponse(ApiResponse):
    agents: list[AgentBasic] = Field(default_factory=list, alias="agentlist")


class AllowedUser(WireModel):
    user_id: str = Field(..., alias="userid")


class AllowUserInfos(WireModel):
    user: list[AllowedUser] = Field(default_factory=list)


class AllowParties(WireModel):
    party_id: list[int] = Field(default_factory=list, alias="partyid")


class AllowTags(WireModel):
    tag_id: list[int] = Field(default_factory=list, alias="tagid")


class AgentDetail(ApiResponse):
    """Visible range and settings of one agent (app)."""

    agent_id: int | None = Field(default=None, alias="agentid")
    name: str | None = None
    square_logo_url: str | None = None
    description: str | None = None
    allow_userinfos: AllowUserInfos | None = None
    allow_parties: AllowParties | None = Field(default=None, alias="allow_partys")
    allow_tags: AllowTags | None = None
    close: int | None = None
    redirect_domain: str | None = None
    report_location_flag: int | None = None
    is_report_enter: int | None = Field(default=None, alias="isreportenter")
    home_url: str | None = None
    publish_status: int | None = Field(default=None, alias="customized_publish_status")


class Department(WireModel):
    """A node of the department tree; root departments have no parent."""

    id: int
    name: str
    parent_id: int | None = Field(default=None, alias="parentid")
    order: int | None = None


class DepartmentListResponse(ApiResponse):
    departments: list[Department] = Field(default_factory=list, alias="department")


class DepartmentMember(WireModel):
    """Full profile of a user as listed under a department.

    Most profile fields are only returned to apps with the matching
    permission, hence optional.
    """

    user_id: str = Field(..., alias="userid")
    name: str
    department: list[int] = Field(default_factory=list)
    order: list[int] = Field(default_factory=list)
    position: str | None = None
    mobile: str | None = None
    gender: str | None = None
    email: str | None = None
    biz_mail: str | None = None
    is_leader_in_dept: list[int] = Field(default_factory=list)
    avatar: str | None = None
    thumb_avatar: str | None = None
    telephone: str | None = None
    alias: str | None = None
    is_leader: int | None = Field(default=None, alias="isleader")
    status: int | None = None
    enable: int | None = None
    hide_mobile: int | None = None
    english_name: str | None = None
    main_department: int | None = None
    qr_code: str | None = None
    extattr: dict[str, Any] = Field(default_factory=dict)


class DepartmentMembersResponse(ApiResponse):
    members: list[DepartmentMember] = Field(default_factory=list, alias="userlist")


class Tag(WireModel):
    id: int = Field(..., alias="tagid")
    name: str = Field(..., alias="tagname")


class TagListResponse(ApiResponse):
    tags: list[Tag] = Field(default_factory=list, alias="taglist")


class TagMember(WireModel):
    user_id: str = Field(..., alias="userid")
    name: str | None = None


class TagMembersResponse(ApiResponse):
    tag_name: str | None = Field(default=None, alias="tagname")
    members: list[TagMember] = Field(default_factory=list, alias="userlist")
    department_ids: list[int] = Field(default_factory=list, alias="partylist")
