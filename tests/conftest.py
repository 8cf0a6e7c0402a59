"""Pytest configuration for etcd-membership tests."""

from collections.abc import Callable

import pytest

from etcdmembership.cluster import ClusterConfig, ClusterState
from etcdmembership.identity import SelfHostedPolicy
from etcdmembership.member import Member, MemberSet
from etcdmembership.store import RawMember, StaticMemberStore
from etcdmembership.workloads import MemoryWorkloadPlatform, WorkloadInfo

BOOT_ENDPOINT = "http://10.0.0.100:12379"


@pytest.fixture
def make_record() -> Callable[..., RawMember]:
    """Build a member record the way etcd reports a normally named member."""

    def make(name: str, member_id: int = 1, namespace: str = "default") -> RawMember:
        cluster = name.rsplit("-", 1)[0]
        host = f"{name}.{cluster}.{namespace}.svc"
        return RawMember(
            id=member_id,
            name=name,
            peer_urls=[f"http://{host}:2380"],
            client_urls=[f"http://{host}:2379"],
        )

    return make


@pytest.fixture
def make_self_hosted_record() -> Callable[..., RawMember]:
    """Build a member record of a self-hosted member reachable by pod IP."""

    def make(name: str, ip: str, member_id: int = 1) -> RawMember:
        return RawMember(
            id=member_id,
            name=name,
            peer_urls=[f"http://{ip}:2380"],
            client_urls=[f"http://{ip}:2379"],
        )

    return make


@pytest.fixture
def config() -> ClusterConfig:
    return ClusterConfig(name="foo", namespace="default")


@pytest.fixture
def self_hosted_config() -> ClusterConfig:
    return ClusterConfig(
        name="foo",
        namespace="kube-system",
        self_hosted=SelfHostedPolicy(BOOT_ENDPOINT),
    )


@pytest.fixture
def state() -> ClusterState:
    return ClusterState()


@pytest.fixture
def store() -> StaticMemberStore:
    return StaticMemberStore()


@pytest.fixture
def known() -> MemberSet:
    """A single known member used to address etcd."""
    return MemberSet.of(Member(name="foo-0000", namespace="default"))


@pytest.fixture
def platform() -> MemoryWorkloadPlatform:
    """Workloads of two self-hosted members of cluster foo."""
    return MemoryWorkloadPlatform(
        [
            WorkloadInfo(
                name="etcd-a",
                namespace="kube-system",
                labels={"etcd_cluster": "foo", "etcd_node": "foo-0003"},
                pod_ip="10.0.0.3",
            ),
            WorkloadInfo(
                name="etcd-b",
                namespace="kube-system",
                labels={"etcd_cluster": "foo", "etcd_node": "foo-0007"},
                pod_ip="10.0.0.7",
            ),
        ]
    )
