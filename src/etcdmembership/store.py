"""Store interfaces for listing etcd cluster membership."""

import logging
import ssl
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from etcdmembership.exceptions import TransportError

logger = logging.getLogger(__name__)

MEMBER_LIST_PATH = "/v3/cluster/member/list"


@dataclass
class RawMember:
    """A member record as reported by etcd."""

    id: int
    name: str = ""
    peer_urls: list[str] = field(default_factory=list)
    client_urls: list[str] = field(default_factory=list)


class MemberStore(ABC):
    """Abstract interface for querying etcd's member list."""

    @abstractmethod
    async def list_members(
        self, client_urls: list[str], tls: ssl.SSLContext | None = None
    ) -> list[RawMember]:
        """List the members of the cluster reachable through ``client_urls``."""
        ...


class StaticMemberStore(MemberStore):
    """In-memory member store."""

    def __init__(self, members: list[RawMember] | None = None) -> None:
        self._members: list[RawMember] = list(members or [])

    async def list_members(
        self, client_urls: list[str], tls: ssl.SSLContext | None = None
    ) -> list[RawMember]:
        """Return the configured members."""
        return list(self._members)

    def set_members(self, members: list[RawMember]) -> None:
        """Replace the configured members."""
        self._members = list(members)


def parse_member_list(payload: dict[str, Any]) -> list[RawMember]:
    """Convert a member list response of etcd's JSON gateway.

    The gateway encodes uint64 IDs as strings and omits empty fields.
    """
    members = []
    for m in payload.get("members") or []:
        members.append(
            RawMember(
                id=int(m.get("ID", 0)),
                name=m.get("name", ""),
                peer_urls=list(m.get("peerURLs") or []),
                client_urls=list(m.get("clientURLs") or []),
            )
        )
    return members


class EtcdGatewayStore(MemberStore):
    """Member store backed by etcd's v3 JSON gateway."""

    def __init__(self, *, timeout: float = 10.0) -> None:
        """Initialize the store.

        Args:
            timeout: Timeout of a single member list request in seconds
        """
        self._timeout = timeout

    async def list_members(
        self, client_urls: list[str], tls: ssl.SSLContext | None = None
    ) -> list[RawMember]:
        """Ask each client URL in turn until one returns the member list."""
        if not client_urls:
            raise TransportError("No client URLs to query")

        errors: list[str] = []
        timeout = aiohttp.ClientTimeout(total=self._timeout)

        async with aiohttp.ClientSession(timeout=timeout) as session:
            for url in client_urls:
                try:
                    payload = await self._query(session, url, tls)
                except (aiohttp.ClientError, TimeoutError, ValueError) as e:
                    logger.debug("member list from %s failed: %s", url, e)
                    errors.append(f"{url}: {e}")
                    continue
                return parse_member_list(payload)

        raise TransportError(f"Could not list members. Errors: {'; '.join(errors)}")

    async def _query(
        self,
        session: aiohttp.ClientSession,
        url: str,
        tls: ssl.SSLContext | None,
    ) -> dict[str, Any]:
        async with session.post(
            url.rstrip("/") + MEMBER_LIST_PATH,
            json={},
            ssl=tls if tls is not None else True,
        ) as resp:
            resp.raise_for_status()
            payload: dict[str, Any] = await resp.json()
            return payload
