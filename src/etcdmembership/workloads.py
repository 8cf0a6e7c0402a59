"""Workloads (pods) running etcd members."""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field

from kubernetes import client
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import HTTPError

from etcdmembership.exceptions import TransportError
from etcdmembership.member import Member, MemberSet

logger = logging.getLogger(__name__)

CLUSTER_LABEL = "etcd_cluster"
NODE_LABEL = "etcd_node"


@dataclass
class WorkloadInfo:
    """A workload as reported by the orchestration platform."""

    name: str
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    pod_ip: str | None = None

    @property
    def node_label(self) -> str | None:
        return self.labels.get(NODE_LABEL)


def cluster_selector(cluster_name: str) -> dict[str, str]:
    """Label selector matching the workloads of one cluster."""
    return {CLUSTER_LABEL: cluster_name}


class WorkloadPlatform(ABC):
    """Abstract interface for listing workloads."""

    @abstractmethod
    async def list_workloads(
        self, namespace: str, label_selector: dict[str, str]
    ) -> list[WorkloadInfo]:
        """List workloads in ``namespace`` carrying all labels of the selector."""
        ...


class MemoryWorkloadPlatform(WorkloadPlatform):
    """In-memory workload platform."""

    def __init__(self, workloads: list[WorkloadInfo] | None = None) -> None:
        self._workloads: list[WorkloadInfo] = list(workloads or [])

    async def list_workloads(
        self, namespace: str, label_selector: dict[str, str]
    ) -> list[WorkloadInfo]:
        return [
            w
            for w in self._workloads
            if w.namespace == namespace
            and all(w.labels.get(k) == v for k, v in label_selector.items())
        ]

    def set_workloads(self, workloads: list[WorkloadInfo]) -> None:
        self._workloads = list(workloads)


class KubernetesWorkloadPlatform(WorkloadPlatform):
    """Workload platform backed by the Kubernetes core API."""

    def __init__(
        self,
        core_api: client.CoreV1Api | None = None,
        *,
        timeout: float = 10.0,
    ) -> None:
        """Initialize the platform.

        Args:
            core_api: Configured API client; defaults to one built from the
                loaded kubeconfig or in-cluster config
            timeout: Request timeout in seconds
        """
        self._api = core_api if core_api is not None else client.CoreV1Api()
        self._timeout = timeout

    async def list_workloads(
        self, namespace: str, label_selector: dict[str, str]
    ) -> list[WorkloadInfo]:
        selector = ",".join(f"{k}={v}" for k, v in sorted(label_selector.items()))

        # The kubernetes client is blocking
        try:
            pods = await asyncio.to_thread(
                self._api.list_namespaced_pod,
                namespace,
                label_selector=selector,
                _request_timeout=self._timeout,
            )
        except ApiException as e:
            raise TransportError(
                f"Failed to list pods in {namespace} ({selector}): {e.status} {e.reason}"
            ) from e
        except HTTPError as e:
            raise TransportError(f"Failed to list pods in {namespace} ({selector}): {e}") from e

        workloads = []
        for pod in pods.items:
            status = pod.status
            workloads.append(
                WorkloadInfo(
                    name=pod.metadata.name,
                    namespace=pod.metadata.namespace or namespace,
                    labels=dict(pod.metadata.labels or {}),
                    pod_ip=status.pod_ip if status is not None else None,
                )
            )
        return workloads


class WorkloadIPIndex:
    """Pod IPs of one cluster's workloads, keyed by their node label."""

    def __init__(self, addresses: dict[str, str] | None = None) -> None:
        self._addresses: dict[str, str] = dict(addresses or {})

    @classmethod
    def from_workloads(
        cls, workloads: Iterable[WorkloadInfo], cluster_name: str
    ) -> "WorkloadIPIndex":
        """Index workloads of ``cluster_name``; others are ignored."""
        addresses: dict[str, str] = {}
        for w in workloads:
            if w.labels.get(CLUSTER_LABEL) != cluster_name:
                continue
            node = w.node_label
            if node is None:
                continue
            # Pods not yet scheduled have no IP
            addresses[node] = w.pod_ip or ""
        return cls(addresses)

    @classmethod
    async def build(
        cls, platform: WorkloadPlatform, namespace: str, cluster_name: str
    ) -> "WorkloadIPIndex":
        """List the cluster's workloads and index them.

        Platform errors propagate unchanged.
        """
        workloads = await platform.list_workloads(namespace, cluster_selector(cluster_name))
        index = cls.from_workloads(workloads, cluster_name)
        logger.debug(
            "indexed %d of %d workloads for cluster %s", len(index), len(workloads), cluster_name
        )
        return index

    def lookup(self, node_label: str) -> str | None:
        """Return the address indexed for ``node_label``, or None if absent."""
        return self._addresses.get(node_label)

    def __contains__(self, node_label: object) -> bool:
        return node_label in self._addresses

    def __len__(self) -> int:
        return len(self._addresses)


def workloads_to_member_set(
    workloads: Iterable[WorkloadInfo], secure_client: bool = False
) -> MemberSet:
    """Build a member set from running workloads, one member per workload."""
    members = MemberSet()
    for w in workloads:
        members.add(
            Member(
                name=w.name,
                namespace=w.namespace,
                pod_ip=w.pod_ip,
                secure_client=secure_client,
            )
        )
    return members
