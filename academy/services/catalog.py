"""Permission catalog adapters.

The catalog is the external directory that knows each actor's effective
permission set. Every failure, whatever its cause, surfaces as a
PermissionFetchError; an empty result is a valid permission set.
"""

import logging
from typing import Any, Dict, FrozenSet, Iterable, Optional, Protocol

import httpx

from academy.core.rbac.permissions import Actor, SUPERADMIN_PERMISSION

logger = logging.getLogger(__name__)


class PermissionFetchError(Exception):
    """Raised when an actor's permissions could not be fetched."""

    def __init__(self, actor_id: str, reason: str):
        super().__init__(f"Could not fetch permissions for actor {actor_id}: {reason}")
        self.actor_id = actor_id
        self.reason = reason


class PermissionCatalog(Protocol):
    """Source of effective permission sets."""

    async def fetch_effective_permissions(self, actor_id: str) -> FrozenSet[str]:
        ...


class DirectoryPermissionCatalog:
    """In-memory directory snapshot of actors."""

    def __init__(self, actors: Optional[Iterable[Actor]] = None):
        self._actors: Dict[str, Actor] = {}
        for actor in actors or []:
            self.add(actor)

    def add(self, actor: Actor) -> None:
        self._actors[actor.id] = actor

    def remove(self, actor_id: str) -> None:
        self._actors.pop(actor_id, None)

    async def fetch_effective_permissions(self, actor_id: str) -> FrozenSet[str]:
        actor = self._actors.get(actor_id)
        if actor is None:
            raise PermissionFetchError(actor_id, "unknown actor")
        return actor.effective_permissions()


def parse_permissions_response(payload: Any) -> FrozenSet[str]:
    """
    Extract permission names from a directory response.

    Accepts {"permissionNames": [...]} or the dashboard shape
    {"availablePermissions": [{"name": ...}, ...], "role": ...}. A reported
    role of "superadmin" adds the super admin override.

    Raises:
        ValueError: If the payload has neither shape
    """
    if not isinstance(payload, dict):
        raise ValueError("permission response is not an object")

    if "permissionNames" in payload:
        raw = payload["permissionNames"]
        if not isinstance(raw, list) or not all(isinstance(n, str) for n in raw):
            raise ValueError("permissionNames must be a list of strings")
        names = set(raw)
    elif "availablePermissions" in payload:
        raw = payload["availablePermissions"]
        if not isinstance(raw, list):
            raise ValueError("availablePermissions must be a list")
        names = set()
        for item in raw:
            name = item.get("name") if isinstance(item, dict) else item
            if not isinstance(name, str):
                raise ValueError(f"invalid permission entry: {item!r}")
            names.add(name)
    else:
        raise ValueError("response has no permission list")

    role = payload.get("role") or payload.get("roleName")
    if isinstance(role, dict):
        role = role.get("name")
    if isinstance(role, str) and role.strip().lower() == "superadmin":
        names.add(SUPERADMIN_PERMISSION)

    return frozenset(names)


class HttpPermissionCatalog:
    """Fetches effective permissions from the directory service over HTTP."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = dict(headers or {})
        self._client = client

    def permissions_url(self, actor_id: str) -> str:
        return f"{self.base_url}/users/{actor_id}/permissions"

    async def fetch_effective_permissions(self, actor_id: str) -> FrozenSet[str]:
        url = self.permissions_url(actor_id)
        try:
            if self._client is not None:
                response = await self._client.get(url, headers=self.headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, headers=self.headers)
            response.raise_for_status()
            return parse_permissions_response(response.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Permission fetch for actor %s failed: %s", actor_id, e)
            raise PermissionFetchError(actor_id, str(e)) from e
