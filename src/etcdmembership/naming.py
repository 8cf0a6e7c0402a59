"""Member naming: cluster name plus a monotonic counter."""

from urllib.parse import urlsplit

from etcdmembership.exceptions import NameFormatError


def create_member_name(cluster_name: str, counter: int) -> str:
    """Build the canonical name of member ``counter`` of a cluster."""
    if counter < 0:
        raise ValueError(f"member counter must be non-negative, got {counter}")
    return f"{cluster_name}-{counter:04d}"


def counter_from_member_name(name: str) -> int:
    """Extract the counter encoded in a member name.

    Raises:
        NameFormatError: If there is no ``-`` followed by digits
    """
    i = name.rfind("-")
    if i == -1 or i + 1 >= len(name):
        raise NameFormatError(name, "no '-' or nothing after the last '-'")

    suffix = name[i + 1 :]
    if not suffix.isascii() or not suffix.isdigit():
        raise NameFormatError(name, f"suffix {suffix!r} is not a counter")
    return int(suffix)


def cluster_name_from_member_name(name: str) -> str:
    """Return the cluster part of a member name."""
    i = name.rfind("-")
    if i <= 0:
        raise NameFormatError(name, "no cluster prefix")
    return name[:i]


def member_name_from_peer_url(peer_url: str) -> str:
    """Derive the member name from its advertised peer URL.

    The member name is the first DNS label of the host, e.g.
    ``https://foo-0001.foo.default.svc:2380`` gives ``foo-0001``.
    The host is lowercased by the URL parser, which is harmless for
    DNS-1123 member names.
    """
    try:
        host = urlsplit(peer_url).hostname
    except ValueError as e:
        raise NameFormatError(peer_url, f"unparsable peer URL: {e}") from e

    if not host:
        raise NameFormatError(peer_url, "peer URL has no host")
    return host.split(".", 1)[0]


def is_owned_by(name: str, cluster_name: str) -> bool:
    """Check if a member name belongs to the given cluster."""
    return name.startswith(cluster_name)
