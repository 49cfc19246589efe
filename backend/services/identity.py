"""Client identity from the headers set by the hosting auth proxy.

The proxy authenticates the user and forwards:

- ``x-ms-client-principal-name`` / ``-id`` / ``-idp``: plain identity fields
- ``x-ms-client-principal``: base64-encoded JSON with roles and claims
"""

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

logger = logging.getLogger(__name__)


class AuthError(Exception):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class IdentityInfo:
    user_name: str
    user_id: str
    identity_provider: str


@dataclass
class ClientPrincipal:
    identity_provider: str
    user_id: str
    user_details: str
    user_roles: list[str] = field(default_factory=list)
    claims: list[dict] = field(default_factory=list)


def parse_identity_info(headers: Mapping[str, str]) -> Optional[IdentityInfo]:
    info = IdentityInfo(
        user_name=headers.get("x-ms-client-principal-name") or "",
        user_id=headers.get("x-ms-client-principal-id") or "",
        identity_provider=headers.get("x-ms-client-principal-idp") or "",
    )
    if not any(v.strip() for v in (info.user_name, info.user_id, info.identity_provider)):
        return None
    return info


def _decode_base64_json(raw: str):
    try:
        return json.loads(base64.b64decode(raw).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None


def parse_client_principal(headers: Mapping[str, str]) -> Optional[ClientPrincipal]:
    raw = headers.get("x-ms-client-principal")
    if not raw:
        return None

    parsed = _decode_base64_json(raw)
    if not isinstance(parsed, dict):
        logger.debug("Ignoring undecodable client principal header")
        return None

    def _str(key):
        value = parsed.get(key)
        return value if isinstance(value, str) else ""

    roles = parsed.get("userRoles")
    roles = [r for r in roles if isinstance(r, str)] if isinstance(roles, list) else []

    claims = parsed.get("claims")
    claims = [
        {"typ": str(c.get("typ", "")), "val": str(c.get("val", ""))}
        for c in claims
        if isinstance(c, dict)
    ] if isinstance(claims, list) else []

    # Only the anonymous role means the proxy did not authenticate anyone.
    lowered = [r.lower() for r in roles]
    if lowered == ["anonymous"]:
        return None

    return ClientPrincipal(
        identity_provider=_str("identityProvider"),
        user_id=_str("userId"),
        user_details=_str("userDetails"),
        user_roles=roles,
        claims=claims,
    )


def _is_role_claim(typ: str) -> bool:
    typ = typ.lower()
    return (
        typ in ("roles", "role")
        or typ.endswith("/role")
        or "claims/role" in typ
    )


def collect_roles(principal: ClientPrincipal) -> set[str]:
    # Some identity providers only put app roles in claims, not userRoles.
    roles = {r.lower() for r in principal.user_roles}
    roles.update(c["val"].lower() for c in principal.claims if _is_role_claim(c["typ"]))
    return roles


def require_role(headers: Mapping[str, str], required_role: str) -> ClientPrincipal:
    principal = parse_client_principal(headers)
    if principal is None:
        raise AuthError("Unauthorized", status_code=401)
    if required_role.lower() not in collect_roles(principal):
        raise AuthError("Forbidden", status_code=403)
    return principal


def has_role(headers: Mapping[str, str], role: str) -> bool:
    try:
        require_role(headers, role)
    except AuthError:
        return False
    return True
