"""Reconciliation of an etcd cluster's tracked membership."""

import logging
import ssl
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from etcdmembership.exceptions import FatalError, NameFormatError, is_fatal
from etcdmembership.identity import (
    BootMemberPendingError,
    IdentityPolicy,
    NormalPolicy,
    SelfHostedPolicy,
)
from etcdmembership.member import Member, MemberSet
from etcdmembership.naming import counter_from_member_name, create_member_name
from etcdmembership.retry import retry_with_backoff
from etcdmembership.store import MemberStore, RawMember
from etcdmembership.workloads import WorkloadIPIndex, WorkloadPlatform

logger = logging.getLogger(__name__)


@dataclass
class ClusterConfig:
    """Static settings of one etcd cluster.

    Attributes:
        name: Cluster name, prefix of every member name
        namespace: Namespace the cluster's workloads run in
        self_hosted: Bootstrap policy of a self-hosted cluster, None otherwise
        secure_peer: Peer traffic uses TLS
        secure_client: Client traffic uses TLS
        tls: Client TLS settings used to query the store
    """

    name: str
    namespace: str = "default"
    self_hosted: SelfHostedPolicy | None = None
    secure_peer: bool = False
    secure_client: bool = False
    tls: ssl.SSLContext | None = None

    @property
    def policy(self) -> IdentityPolicy:
        if self.self_hosted is not None:
            return self.self_hosted
        return NormalPolicy()


@dataclass
class ClusterState:
    """Membership state of one cluster, owned by its reconciliation loop.

    Callers must not run two reconciliations of the same state at once.
    """

    members: MemberSet = field(default_factory=MemberSet)
    member_counter: int = 0
    boot_member_wait_started: float | None = None


def new_member(config: ClusterConfig, counter: int) -> Member:
    """Create the member with the given counter, ahead of adding it to etcd."""
    return Member(
        name=create_member_name(config.name, counter),
        namespace=config.namespace,
        secure_peer=config.secure_peer,
        secure_client=config.secure_client,
        self_hosted=config.self_hosted is not None,
    )


class MembershipReconciler:
    """Keeps a cluster's tracked members in sync with etcd's member list."""

    def __init__(
        self,
        config: ClusterConfig,
        state: ClusterState,
        store: MemberStore,
        platform: WorkloadPlatform | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize reconciler.

        Args:
            config: Cluster settings
            state: Membership state updated by each successful pass
            store: Source of etcd's member list
            platform: Source of workload addresses, required when self-hosted
            clock: Monotonic clock used to time the boot member's removal
        """
        self._config = config
        self._state = state
        self._store = store
        self._platform = platform
        self._clock = clock

    @property
    def state(self) -> ClusterState:
        return self._state

    def new_member(self, counter: int) -> Member:
        """Create a new member for scale-up; does not touch the state."""
        return new_member(self._config, counter)

    async def reconcile(self, known: MemberSet) -> None:
        """Replace the tracked members with etcd's current member list.

        ``known`` supplies the client URLs used to reach etcd. The tracked
        members and member counter change only if every reported member
        resolves.

        Raises:
            FatalError: If the membership is inconsistent beyond repair
            TransientError: If a member should resolve on a later pass
            Exception: Store and platform errors, unchanged
        """
        config = self._config
        policy = config.policy

        if policy.self_hosted and self._platform is None:
            raise FatalError(f"self-hosted cluster {config.name} has no workload platform")

        records = await self._store.list_members(known.client_urls(), config.tls)

        index: WorkloadIPIndex | None = None
        if self._platform is not None and policy.self_hosted:
            index = await WorkloadIPIndex.build(self._platform, config.namespace, config.name)

        members = MemberSet()
        counter = self._state.member_counter

        for record in records:
            try:
                name = policy.resolve_name(record, config.name)
            except BootMemberPendingError as e:
                self._wait_for_boot_member(e)
                raise

            try:
                ct = counter_from_member_name(name)
            except NameFormatError as e:
                raise FatalError(f"get counter from member name ({name}) failed: {e}") from e
            counter = max(counter, ct + 1)

            members.add(self._canonical_member(name, record, index))

        self._install(members, counter)

    async def reconcile_with_retry(
        self,
        known: MemberSet,
        *,
        max_attempts: int = 5,
        base_delay: float = 0.1,
        max_delay: float = 10.0,
    ) -> None:
        """Reconcile, retrying ordinary errors with backoff.

        Fatal errors are raised on the first occurrence.
        """

        async def attempt() -> None:
            await self.reconcile(known)

        await retry_with_backoff(
            attempt,
            max_attempts=max_attempts,
            base_delay=base_delay,
            max_delay=max_delay,
            retry_if=lambda e: not is_fatal(e),
        )

    def _canonical_member(
        self, name: str, record: RawMember, index: WorkloadIPIndex | None
    ) -> Member:
        config = self._config
        member = Member(
            name=name,
            namespace=config.namespace,
            id=record.id,
            secure_peer=config.secure_peer,
            secure_client=config.secure_client,
        )

        if index is not None:
            pod_ip = index.lookup(record.name)
            if pod_ip is None:
                raise FatalError(f"could not get podIP for {record.name} member (ID {record.id})")
            member.pod_ip = pod_ip or None
            member.self_hosted = True

        return member

    def _wait_for_boot_member(self, err: BootMemberPendingError) -> None:
        """Record the boot member deferral; escalate once it has lasted too long."""
        state = self._state
        now = self._clock()
        if state.boot_member_wait_started is None:
            state.boot_member_wait_started = now
        waited = now - state.boot_member_wait_started

        timeout = self._config.self_hosted.boot_member_timeout if self._config.self_hosted else None
        if timeout is not None and waited > timeout:
            raise FatalError(
                f"boot member ({err.member_name}) of cluster {self._config.name} "
                f"not removed after {waited:.0f}s"
            ) from err

        logger.warning("cluster %s: %s (waited %.0fs)", self._config.name, err, waited)

    def _install(self, members: MemberSet, counter: int) -> None:
        state = self._state
        name = self._config.name

        if counter > state.member_counter:
            logger.info(
                "cluster %s: member counter advanced %d -> %d", name, state.member_counter, counter
            )
            state.member_counter = counter

        if not members.is_equal(state.members):
            logger.info("cluster %s: members %s -> %s", name, state.members, members)
        state.members = members
        state.boot_member_wait_started = None
