"""Resolution of member names from etcd's member records."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from etcdmembership.exceptions import FatalError, NameFormatError, TransientError
from etcdmembership.naming import is_owned_by, member_name_from_peer_url
from etcdmembership.store import RawMember


class BootMemberPendingError(TransientError):
    """The boot member of a self-hosted cluster is still a member."""

    def __init__(self, name: str) -> None:
        self.member_name = name
        super().__init__(
            f"skipping for self hosted cluster: waiting for the boot member ({name}) "
            "to be removed..."
        )


class IdentityPolicy(ABC):
    """How a cluster names the members etcd reports."""

    self_hosted: bool = False

    @abstractmethod
    def resolve_name(self, record: RawMember, cluster_name: str) -> str:
        """Return the canonical name of ``record``.

        Raises:
            FatalError: If the record can never resolve
            TransientError: If the record should resolve on a later pass
        """
        ...


@dataclass(frozen=True)
class NormalPolicy(IdentityPolicy):
    """Members named by the operator; the name is the peer URL's host."""

    def resolve_name(self, record: RawMember, cluster_name: str) -> str:
        if not record.peer_urls:
            raise FatalError(f"member (ID {record.id}) has no peer URL")

        peer_url = record.peer_urls[0]
        try:
            return member_name_from_peer_url(peer_url)
        except NameFormatError as e:
            raise FatalError(f"invalid member peerURL ({peer_url}): {e}") from e


@dataclass(frozen=True)
class SelfHostedPolicy(IdentityPolicy):
    """Self-hosted cluster bootstrapped through a temporary boot member.

    Attributes:
        boot_member_client_endpoint: Client URL of the boot member
        boot_member_timeout: Seconds the boot member may linger before
            waiting on it becomes fatal; None waits forever
    """

    boot_member_client_endpoint: str
    boot_member_timeout: float | None = None

    self_hosted = True

    def resolve_name(self, record: RawMember, cluster_name: str) -> str:
        if not record.name or not record.client_urls:
            peer_url = record.peer_urls[0] if record.peer_urls else ""
            raise FatalError(f"unready self-hosted member (peerURL: {peer_url})")

        if record.client_urls[0] == self.boot_member_client_endpoint:
            raise BootMemberPendingError(record.name)

        if not is_owned_by(record.name, cluster_name):
            raise FatalError(f"member ({record.name}) does not belong to this cluster")
        return record.name


def resolve_member_name(
    record: RawMember,
    cluster_name: str,
    policy: IdentityPolicy | None = None,
) -> str:
    """Resolve a record's name; no policy means a normally bootstrapped cluster."""
    return (policy or NormalPolicy()).resolve_name(record, cluster_name)
