"""Membership reconciliation for etcd clusters managed by an operator."""

from etcdmembership.cluster import (
    ClusterConfig,
    ClusterState,
    MembershipReconciler,
    new_member,
)
from etcdmembership.exceptions import (
    ErrorKind,
    FatalError,
    MembershipError,
    NameFormatError,
    TransientError,
    TransportError,
    classify,
    is_fatal,
)
from etcdmembership.identity import (
    BootMemberPendingError,
    IdentityPolicy,
    NormalPolicy,
    SelfHostedPolicy,
    resolve_member_name,
)
from etcdmembership.member import Member, MemberSet
from etcdmembership.naming import (
    counter_from_member_name,
    create_member_name,
    is_owned_by,
    member_name_from_peer_url,
)
from etcdmembership.store import EtcdGatewayStore, MemberStore, RawMember, StaticMemberStore
from etcdmembership.workloads import (
    KubernetesWorkloadPlatform,
    MemoryWorkloadPlatform,
    WorkloadInfo,
    WorkloadIPIndex,
    WorkloadPlatform,
    workloads_to_member_set,
)

__all__ = [
    "reconcile",
    "ClusterConfig",
    "ClusterState",
    "MembershipReconciler",
    "new_member",
    "Member",
    "MemberSet",
    "RawMember",
    "MemberStore",
    "StaticMemberStore",
    "EtcdGatewayStore",
    "WorkloadInfo",
    "WorkloadPlatform",
    "MemoryWorkloadPlatform",
    "KubernetesWorkloadPlatform",
    "WorkloadIPIndex",
    "workloads_to_member_set",
    "IdentityPolicy",
    "NormalPolicy",
    "SelfHostedPolicy",
    "resolve_member_name",
    "create_member_name",
    "counter_from_member_name",
    "member_name_from_peer_url",
    "is_owned_by",
    "ErrorKind",
    "MembershipError",
    "FatalError",
    "TransientError",
    "TransportError",
    "NameFormatError",
    "BootMemberPendingError",
    "classify",
    "is_fatal",
]

__version__ = "0.1.0"


async def reconcile(
    config: ClusterConfig,
    state: ClusterState,
    known: MemberSet,
    store: MemberStore,
    platform: WorkloadPlatform | None = None,
) -> None:
    """Run one reconciliation pass of a cluster's membership.

    Args:
        config: Cluster settings
        state: Membership state, replaced on success
        known: Last known members, used to reach etcd
        store: Source of etcd's member list
        platform: Source of workload addresses, required when self-hosted
    """
    reconciler = MembershipReconciler(config, state, store, platform)
    await reconciler.reconcile(known)
