"""Members of an etcd cluster as tracked by the operator."""

from dataclasses import dataclass

from etcdmembership.naming import cluster_name_from_member_name

CLIENT_PORT = 2379
PEER_PORT = 2380


@dataclass
class Member:
    """One etcd member.

    ``id`` is assigned by etcd once the member has joined and is 0 until
    then. ``pod_ip`` is only known for self-hosted members or once the
    workload has been scheduled.
    """

    name: str
    namespace: str
    id: int = 0
    pod_ip: str | None = None
    secure_peer: bool = False
    secure_client: bool = False
    self_hosted: bool = False

    def has_addr(self) -> bool:
        """Check if the member can be reached yet."""
        return bool(self.pod_ip) or not self.self_hosted

    def addr(self) -> str:
        """Address other members and clients use to reach this member."""
        if self.self_hosted:
            if not self.pod_ip:
                raise ValueError(f"self-hosted member {self.name} has no pod IP")
            return self.pod_ip
        cluster_name = cluster_name_from_member_name(self.name)
        return f"{self.name}.{cluster_name}.{self.namespace}.svc"

    def client_url(self) -> str:
        scheme = "https" if self.secure_client else "http"
        return f"{scheme}://{self.addr()}:{CLIENT_PORT}"

    def peer_url(self) -> str:
        scheme = "https" if self.secure_peer else "http"
        return f"{scheme}://{self.addr()}:{PEER_PORT}"


class MemberSet(dict[str, Member]):
    """Members keyed by name."""

    @classmethod
    def of(cls, *members: Member) -> "MemberSet":
        ms = cls()
        for m in members:
            ms.add(m)
        return ms

    def add(self, member: Member) -> None:
        self[member.name] = member

    def remove(self, name: str) -> None:
        self.pop(name, None)

    def diff(self, other: "MemberSet") -> "MemberSet":
        """Members of this set whose names are not in ``other``."""
        return MemberSet({name: m for name, m in self.items() if name not in other})

    def is_equal(self, other: "MemberSet") -> bool:
        """Check if both sets hold the same member names."""
        return self.keys() == other.keys()

    def pick_one(self) -> Member:
        """Return an arbitrary member.

        Raises:
            KeyError: If the set is empty
        """
        for m in self.values():
            return m
        raise KeyError("empty member set")

    def client_urls(self) -> list[str]:
        """Client URLs of the members that can be reached.

        Self-hosted members whose pod has no IP yet are left out.
        """
        return [m.client_url() for m in self.values() if m.has_addr()]

    def peer_url_pairs(self) -> list[str]:
        """``name=peerURL`` pairs, as used for etcd's initial cluster flag."""
        return [f"{m.name}={m.peer_url()}" for m in self.values()]

    def __str__(self) -> str:
        return "{" + ", ".join(sorted(self)) + "}"
