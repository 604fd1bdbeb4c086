import json
import re
from urllib.parse import unquote

import pytest
import requests
from eth_account import Account
from eth_account.messages import encode_defunct

from guild_sdk import ClientConfig, EthAccountSigner, GuildClient
from guild_sdk.message import create_signable_message

BASE_URL = "https://guild.test/v1"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
OTHER_ADDRESS = "0x1111111111111111111111111111111111111111"
INVITE_LINK = "https://discord.gg/sdktest"


def _response(status, body=None, url=BASE_URL):
    response = requests.Response()
    response.status_code = status
    response.url = url
    response.reason = {200: "OK", 201: "Created", 400: "Bad Request", 401: "Unauthorized",
                       403: "Forbidden", 404: "Not Found", 500: "Internal Server Error"}.get(status, "")
    response._content = b"" if body is None else json.dumps(body).encode("utf-8")
    response.headers["Content-Type"] = "application/json"
    return response


class FakeGuildAPI:
    """
    In-memory stand-in for the Guild API, used as the client's requests
    session. Signed requests are verified by recovering the signer address
    from the message rebuilt out of the request itself.
    """

    def __init__(self, member_address):
        self.headers = {}
        self.calls = []
        self.closed = False
        self._next_id = 5000
        self.guilds = {}
        self.roles = {}
        self.members = {}

        self._add_guild(1985, "Our Guild", "our-guild", OTHER_ADDRESS)
        self._add_role(1904, 1985, "Members", [{"type": "ALLOWLIST", "data": {"addresses": [member_address]}}])
        self._add_role(1899, 1985, "Insiders", [{"type": "ALLOWLIST", "data": {"addresses": [OTHER_ADDRESS]}}])
        self._add_guild(2158, "Join Test", "join-test", OTHER_ADDRESS)
        self._add_role(2200, 2158, "Everyone", [{"type": "FREE"}])
        self.members[(1985, member_address.lower())] = {1904}

    # state helpers

    def _new_id(self):
        self._next_id += 1
        return self._next_id

    def _add_guild(self, guild_id, name, url_name, owner, **extra):
        self.guilds[guild_id] = dict(
            id=guild_id, name=name, urlName=url_name, owner=owner.lower(), roleIds=[], **extra
        )

    def _add_role(self, role_id, guild_id, name, requirements, logic="AND", **extra):
        self.roles[role_id] = dict(
            id=role_id, guildId=guild_id, name=name, logic=logic, requirements=requirements, **extra
        )
        self.guilds[guild_id]["roleIds"].append(role_id)

    def _role_json(self, role_id):
        role = dict(self.roles[role_id])
        role["members"] = sorted(
            address for (guild_id, address), role_ids in self.members.items() if role_id in role_ids
        )
        return role

    def _guild_json(self, guild_id):
        guild = {k: v for k, v in self.guilds[guild_id].items() if k not in ("owner", "roleIds")}
        guild["admins"] = [{"address": self.guilds[guild_id]["owner"], "isOwner": True}]
        guild["roles"] = [self._role_json(role_id) for role_id in self.guilds[guild_id]["roleIds"]]
        return guild

    def _find_guild(self, key):
        if key.isdigit():
            return int(key) if int(key) in self.guilds else None
        for guild_id, guild in self.guilds.items():
            if guild["urlName"] == key:
                return guild_id
        return None

    def _satisfies(self, role_id, address):
        role = self.roles[role_id]
        results = []
        for requirement in role["requirements"]:
            if requirement["type"] == "FREE":
                results.append(True)
            elif requirement["type"] == "ALLOWLIST":
                allowed = [a.lower() for a in requirement.get("data", {}).get("addresses", [])]
                results.append(address.lower() in allowed)
            else:
                results.append(False)
        if role["logic"] == "OR":
            return any(results)
        return bool(results) and all(results)

    def _access(self, guild_id, address):
        return [
            {"roleId": role_id, "access": self._satisfies(role_id, address)}
            for role_id in self.guilds[guild_id]["roleIds"]
        ]

    # requests.Session interface

    def close(self):
        self.closed = True

    def request(self, method, url, json=None, params=None, timeout=None):
        assert url.startswith(BASE_URL)
        path = url[len(BASE_URL):]
        self.calls.append((method, path, json, params))

        caller = None
        if method != "GET":
            caller = self._verify(method, path, json)
            if caller is None:
                return _response(401, {"errors": [{"msg": "Invalid or expired signature"}]})

        segments = [unquote(s) for s in path.strip("/").split("/")]
        handler = getattr(self, f"_{method.lower()}_{segments[0]}", None)
        if handler is None:
            return _response(404)
        status, body = handler(segments[1:], json["payload"] if json else None, caller, params or {})
        return _response(status, body, url)

    def _verify(self, method, path, body):
        if not body or "validation" not in body:
            return None
        validation = body["validation"]
        message = create_signable_message(
            validation["address"], method, path, body["payload"], validation.get("nonce")
        )
        recovered = Account.recover_message(
            encode_defunct(text=message), signature=validation["addressSignedMessage"]
        )
        if recovered.lower() != validation["address"].lower():
            return None
        return recovered.lower()

    # routes

    def _get_user(self, segments, payload, caller, params):
        address = segments[1].lower()
        memberships = {}
        for (guild_id, member), role_ids in self.members.items():
            if member == address and role_ids:
                memberships.setdefault(guild_id, set()).update(role_ids)
        return 200, [{"guildId": g, "roleids": sorted(r)} for g, r in sorted(memberships.items())]

    def _get_guild(self, segments, payload, caller, params):
        if not segments:
            return 200, [self._guild_json(g) for g in sorted(self.guilds)]
        if segments[0] in ("access", "member"):
            guild_id = self._find_guild(segments[1])
            if guild_id is None:
                return 404, None
            access = self._access(guild_id, segments[2])
            if segments[0] == "member":
                held = self.members.get((guild_id, segments[2].lower()), set())
                access = [{"roleId": a["roleId"], "access": a["roleId"] in held} for a in access]
            return 200, access
        if re.fullmatch(r"0x[0-9a-fA-F]{40}", segments[0]):
            address = segments[0].lower()
            if params.get("order") == "admin":
                found = [g for g, guild in self.guilds.items() if guild["owner"] == address]
            else:
                found = sorted({g for (g, member) in self.members if member == address})
            return 200, [self._guild_json(g) for g in found]
        guild_id = self._find_guild(segments[0])
        if guild_id is None:
            return 404, None
        return 200, self._guild_json(guild_id)

    def _post_guild(self, segments, payload, caller, params):
        if segments == ["join"]:
            guild_id = payload["guildId"]
            if guild_id not in self.guilds:
                return 404, None
            key = (guild_id, caller)
            already = key in self.members
            held = {a["roleId"] for a in self._access(guild_id, caller) if a["access"]}
            self.members[key] = held
            return 200, {"alreadyJoined": already, "inviteLink": INVITE_LINK}

        if not payload.get("name"):
            return 400, {"errors": [{"msg": "Invalid value", "param": "name"}]}
        guild_id = self._new_id()
        url_name = payload.get("urlName") or payload["name"].lower().replace(" ", "-")
        self._add_guild(guild_id, payload["name"], url_name, caller,
                        description=payload.get("description"), imageUrl=payload.get("imageUrl"))
        for role in payload.get("roles", []):
            self._add_role(self._new_id(), guild_id, role["name"], role.get("requirements", []),
                           role.get("logic", "AND"))
        return 201, self._guild_json(guild_id)

    def _put_guild(self, segments, payload, caller, params):
        guild_id = self._find_guild(segments[0])
        if guild_id is None:
            return 404, None
        if self.guilds[guild_id]["owner"] != caller:
            return 403, {"errors": [{"msg": "Not an admin of this guild"}]}
        for key in ("name", "urlName", "description", "imageUrl"):
            if key in payload:
                self.guilds[guild_id][key] = payload[key]
        return 200, self._guild_json(guild_id)

    def _delete_guild(self, segments, payload, caller, params):
        guild_id = self._find_guild(segments[0])
        if guild_id is None:
            return 404, None
        if self.guilds[guild_id]["owner"] != caller:
            return 403, {"errors": [{"msg": "Not an admin of this guild"}]}
        for role_id in self.guilds.pop(guild_id)["roleIds"]:
            self.roles.pop(role_id, None)
        return 200, {"success": True}

    def _get_role(self, segments, payload, caller, params):
        role_id = int(segments[0])
        if role_id not in self.roles:
            return 404, None
        return 200, self._role_json(role_id)

    def _post_role(self, segments, payload, caller, params):
        guild_id = payload.get("guildId")
        if guild_id not in self.guilds:
            return 400, {"errors": [{"msg": "Guild does not exist", "param": "guildId"}]}
        if self.guilds[guild_id]["owner"] != caller:
            return 403, {"errors": [{"msg": "Not an admin of this guild"}]}
        role_id = self._new_id()
        self._add_role(role_id, guild_id, payload["name"], payload.get("requirements", []),
                       payload.get("logic", "AND"))
        return 201, self._role_json(role_id)

    def _put_role(self, segments, payload, caller, params):
        role_id = int(segments[0])
        if role_id not in self.roles:
            return 404, None
        for key in ("name", "logic", "requirements", "description", "imageUrl"):
            if key in payload:
                self.roles[role_id][key] = payload[key]
        return 200, self._role_json(role_id)

    def _delete_role(self, segments, payload, caller, params):
        role_id = int(segments[0])
        if role_id not in self.roles:
            return 404, None
        role = self.roles.pop(role_id)
        self.guilds[role["guildId"]]["roleIds"].remove(role_id)
        return 200, {"success": True}


@pytest.fixture
def signer():
    return EthAccountSigner.generate()


@pytest.fixture
def api(signer):
    return FakeGuildAPI(signer.address)


@pytest.fixture
def client(api):
    return GuildClient(ClientConfig(api_url=BASE_URL), session=api)
