"""
Typed models for Guild API resources and request parameters.

Wire names are camelCase; every model accepts either the wire name or the
Python field name and keeps fields it does not know about.
"""
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Logic = Literal["AND", "OR", "NOR", "NAND"]


class APIModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_payload(self) -> Dict[str, Any]:
        """Wire representation without unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Requirement(APIModel):
    """A single access condition, e.g. ALLOWLIST, FREE, ERC20, ERC721."""

    type: str
    id: Optional[int] = None
    address: Optional[str] = None
    chain: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


class Role(APIModel):
    id: int
    name: str
    logic: Logic = "AND"
    requirements: List[Requirement] = Field(default_factory=list)
    guild_id: Optional[int] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    members: List[str] = Field(default_factory=list)


class GuildAdmin(APIModel):
    address: str
    id: Optional[int] = None
    is_owner: bool = False


class Guild(APIModel):
    id: int
    name: str
    url_name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    show_members: Optional[bool] = None
    theme: Optional[Dict[str, Any]] = None
    admins: List[GuildAdmin] = Field(default_factory=list)
    roles: List[Role] = Field(default_factory=list)


class Membership(APIModel):
    """Roles an address holds in one guild."""

    guild_id: int
    role_ids: List[int] = Field(default_factory=list, alias="roleids")


class UserAccess(APIModel):
    """Whether an address satisfies a role; access is None when undecidable."""

    role_id: int
    access: Optional[bool] = None
    errors: Optional[List[Dict[str, Any]]] = None


class JoinResponse(APIModel):
    already_joined: bool
    invite_link: Optional[str] = None


class DeleteResponse(APIModel):
    success: bool


class GuildRoleParams(APIModel):
    """A role created together with its guild."""

    name: str
    logic: Logic = "AND"
    requirements: List[Requirement] = Field(default_factory=list)
    description: Optional[str] = None
    image_url: Optional[str] = None


class CreateGuildParams(APIModel):
    name: str
    url_name: Optional[str] = None
    image_url: Optional[str] = None
    description: Optional[str] = None
    show_members: Optional[bool] = None
    theme: Optional[Dict[str, Any]] = None
    roles: List[GuildRoleParams] = Field(default_factory=list)


class UpdateGuildParams(APIModel):
    name: Optional[str] = None
    url_name: Optional[str] = None
    image_url: Optional[str] = None
    description: Optional[str] = None
    show_members: Optional[bool] = None
    theme: Optional[Dict[str, Any]] = None


class CreateRoleParams(GuildRoleParams):
    guild_id: int


class UpdateRoleParams(APIModel):
    name: Optional[str] = None
    logic: Optional[Logic] = None
    requirements: Optional[List[Requirement]] = None
    description: Optional[str] = None
    image_url: Optional[str] = None


Params = Union[APIModel, Dict[str, Any]]


def as_payload(params: Optional[Params]) -> Dict[str, Any]:
    """Normalize a parameter model or a plain dict into a request payload."""
    if params is None:
        return {}
    if isinstance(params, APIModel):
        return params.to_payload()
    return dict(params)
