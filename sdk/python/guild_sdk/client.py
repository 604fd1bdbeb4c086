import logging
from typing import Any, List, Optional, Type, TypeVar, Union
from urllib.parse import quote

import requests
from pydantic import ValidationError as PydanticValidationError

from .config import ClientConfig
from .dispatcher import Dispatcher
from .exceptions import APIError
from .message import create_authenticated_request
from .signers import Signer
from .types import (
    APIModel,
    CreateGuildParams,
    CreateRoleParams,
    DeleteResponse,
    Guild,
    JoinResponse,
    Membership,
    Params,
    Role,
    UpdateGuildParams,
    UpdateRoleParams,
    UserAccess,
    as_payload,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=APIModel)


def _segment(value: Union[int, str]) -> str:
    return quote(str(value), safe="")


def _one(model: Type[M], data: Any) -> Optional[M]:
    if data is None:
        return None
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise APIError(f"Unexpected {model.__name__} in response: {e}", status_code=None) from e


def _many(model: Type[M], data: Any) -> List[M]:
    if not data:
        return []
    if not isinstance(data, list):
        raise APIError(
            f"Expected a list of {model.__name__}, got {type(data).__name__}", status_code=None
        )
    try:
        return [model.model_validate(item) for item in data]
    except PydanticValidationError as e:
        raise APIError(f"Unexpected {model.__name__} in response: {e}", status_code=None) from e


class _Namespace:

    def __init__(self, dispatcher: Dispatcher):
        self._dispatcher = dispatcher

    def _get(self, path: str, **params) -> Any:
        return self._dispatcher.request("GET", path, params=params or None)

    def _signed(
        self,
        method: str,
        path: str,
        address: str,
        sign: Signer,
        payload: Optional[Params] = None,
        nonce: Optional[str] = None
    ) -> Any:
        # Signing happens before dispatch; a SigningRejected aborts the call.
        body = create_authenticated_request(
            address=address,
            method=method,
            path=path,
            payload=as_payload(payload),
            sign=sign,
            nonce=nonce
        )
        logger.debug("Signed %s %s for %s", method, path, address)
        return self._dispatcher.request(method, path, json=body)


class UserAPI(_Namespace):

    def get_memberships(self, address: str) -> List[Membership]:
        """Guilds the address interacted with, and the roles it holds there."""
        return _many(Membership, self._get(f"/user/membership/{_segment(address)}"))


class GuildAPI(_Namespace):

    def get_all(self) -> List[Guild]:
        return _many(Guild, self._get("/guild"))

    def get_by_address(self, address: str, order: str = "members") -> List[Guild]:
        """
        Guilds related to an address.

        Args:
            address: Wallet address.
            order: Server-side ordering/filter, e.g. 'members' or 'admin'.
        """
        return _many(Guild, self._get(f"/guild/{_segment(address)}", order=order))

    def get(self, id_or_url_name: Union[int, str]) -> Optional[Guild]:
        """Look up a guild by numeric id or url-name; None if it does not exist."""
        return _one(Guild, self._get(f"/guild/{_segment(id_or_url_name)}"))

    def get_user_access(self, guild_id: Union[int, str], address: str) -> List[UserAccess]:
        """Per-role access the address would get, evaluated live."""
        return _many(
            UserAccess,
            self._get(f"/guild/access/{_segment(guild_id)}/{_segment(address)}")
        )

    def get_user_memberships(self, guild_id: Union[int, str], address: str) -> List[UserAccess]:
        """Per-role membership the address currently holds."""
        return _many(
            UserAccess,
            self._get(f"/guild/member/{_segment(guild_id)}/{_segment(address)}")
        )

    def join(self, guild_id: int, address: str, sign: Signer, nonce: Optional[str] = None) -> Optional[JoinResponse]:
        """
        Join a guild with every role the address currently satisfies.

        Args:
            guild_id: Numeric id of the guild.
            address: Wallet address of the caller.
            sign: Signer callable for the caller's wallet.
            nonce: Optional nonce bound into the signed message.

        Returns:
            JoinResponse: already_joined is True when the address was a member before.
        """
        return _one(
            JoinResponse,
            self._signed("POST", "/guild/join", address, sign, {"guildId": guild_id}, nonce)
        )

    def create(
        self,
        address: str,
        sign: Signer,
        params: Union[CreateGuildParams, dict],
        nonce: Optional[str] = None
    ) -> Optional[Guild]:
        """
        Create a guild, together with its initial roles, owned by the caller.

        Args:
            address: Wallet address of the future owner.
            sign: Signer callable for that wallet.
            params: CreateGuildParams or an equivalent camelCase dict.
            nonce: Optional nonce bound into the signed message.
        """
        return _one(Guild, self._signed("POST", "/guild", address, sign, params, nonce))

    def update(
        self,
        guild_id: int,
        address: str,
        sign: Signer,
        params: Union[UpdateGuildParams, dict],
        nonce: Optional[str] = None
    ) -> Optional[Guild]:
        """
        Change guild fields; only the fields present in params are sent.

        Args:
            guild_id: Numeric id of the guild.
            address: Wallet address of a guild admin.
            sign: Signer callable for that wallet.
            params: UpdateGuildParams or an equivalent camelCase dict.
            nonce: Optional nonce bound into the signed message.

        Returns:
            Guild: The updated guild, or None if it does not exist.
        """
        return _one(
            Guild,
            self._signed("PUT", f"/guild/{_segment(guild_id)}", address, sign, params, nonce)
        )

    def delete(self, guild_id: int, address: str, sign: Signer, nonce: Optional[str] = None) -> Optional[DeleteResponse]:
        """
        Delete a guild and its roles.

        Args:
            guild_id: Numeric id of the guild.
            address: Wallet address of a guild admin.
            sign: Signer callable for that wallet.
            nonce: Optional nonce bound into the signed message.
        """
        return _one(
            DeleteResponse,
            self._signed("DELETE", f"/guild/{_segment(guild_id)}", address, sign, None, nonce)
        )


class RoleAPI(_Namespace):

    def get(self, role_id: int) -> Optional[Role]:
        """Look up a role by id; None if it does not exist."""
        return _one(Role, self._get(f"/role/{_segment(role_id)}"))

    def create(
        self,
        address: str,
        sign: Signer,
        params: Union[CreateRoleParams, dict],
        nonce: Optional[str] = None
    ) -> Optional[Role]:
        """
        Add a role to an existing guild.

        Args:
            address: Wallet address of an admin of params.guild_id.
            sign: Signer callable for that wallet.
            params: CreateRoleParams or an equivalent camelCase dict.
            nonce: Optional nonce bound into the signed message.
        """
        return _one(Role, self._signed("POST", "/role", address, sign, params, nonce))

    def update(
        self,
        role_id: int,
        address: str,
        sign: Signer,
        params: Union[UpdateRoleParams, dict],
        nonce: Optional[str] = None
    ) -> Optional[Role]:
        """
        Change a role's name, logic or requirements.

        Args:
            role_id: Numeric id of the role.
            address: Wallet address of an admin of the role's guild.
            sign: Signer callable for that wallet.
            params: UpdateRoleParams or an equivalent camelCase dict.
            nonce: Optional nonce bound into the signed message.

        Returns:
            Role: The updated role, or None if it does not exist.
        """
        return _one(
            Role,
            self._signed("PUT", f"/role/{_segment(role_id)}", address, sign, params, nonce)
        )

    def delete(self, role_id: int, address: str, sign: Signer, nonce: Optional[str] = None) -> Optional[DeleteResponse]:
        """
        Delete a role.

        Args:
            role_id: Numeric id of the role.
            address: Wallet address of an admin of the role's guild.
            sign: Signer callable for that wallet.
            nonce: Optional nonce bound into the signed message.
        """
        return _one(
            DeleteResponse,
            self._signed("DELETE", f"/role/{_segment(role_id)}", address, sign, None, nonce)
        )


class GuildClient:
    """
    Python client for the Guild API.

    Read calls are plain HTTP requests. Mutating calls take the caller's
    address and a signer callable; the request body carries the payload
    together with the address and its signature over a message derived
    from the action, which the API verifies in place of a session.

    Example:
        >>> signer = EthAccountSigner.generate()
        >>> client = GuildClient()
        >>> client.guild.join(1985, signer.address, signer)
    """

    def __init__(self, config: Optional[ClientConfig] = None, session: Optional[requests.Session] = None):
        """
        Args:
            config: Client configuration; defaults read GUILD_* environment variables.
            session: Optional requests session, e.g. for proxies or custom adapters.
        """
        self.config = config or ClientConfig()
        self._dispatcher = Dispatcher(self.config, session)
        self.user = UserAPI(self._dispatcher)
        self.guild = GuildAPI(self._dispatcher)
        self.role = RoleAPI(self._dispatcher)

    def close(self):
        self._dispatcher.close()

    def __enter__(self) -> "GuildClient":
        return self

    def __exit__(self, *exc_info):
        self.close()
