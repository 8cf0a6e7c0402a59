"""Tests for workload listing and the workload IP index."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import MaxRetryError

from etcdmembership.exceptions import TransportError
from etcdmembership.workloads import (
    KubernetesWorkloadPlatform,
    MemoryWorkloadPlatform,
    WorkloadInfo,
    WorkloadIPIndex,
    cluster_selector,
    workloads_to_member_set,
)


def _pod(name: str, labels: dict[str, str] | None, pod_ip: str | None) -> SimpleNamespace:
    return SimpleNamespace(
        metadata=SimpleNamespace(name=name, namespace="kube-system", labels=labels),
        status=SimpleNamespace(pod_ip=pod_ip),
    )


class TestMemoryWorkloadPlatform:
    async def test_filters_by_namespace_and_labels(self, platform: MemoryWorkloadPlatform) -> None:
        platform.set_workloads(
            [
                WorkloadInfo(name="a", namespace="kube-system", labels={"etcd_cluster": "foo"}),
                WorkloadInfo(name="b", namespace="kube-system", labels={"etcd_cluster": "bar"}),
                WorkloadInfo(name="c", namespace="default", labels={"etcd_cluster": "foo"}),
            ]
        )
        result = await platform.list_workloads("kube-system", cluster_selector("foo"))
        assert [w.name for w in result] == ["a"]

    async def test_empty_selector_matches_all(self, platform: MemoryWorkloadPlatform) -> None:
        result = await platform.list_workloads("kube-system", {})
        assert len(result) == 2


class TestKubernetesWorkloadPlatform:
    async def test_list_workloads(self) -> None:
        api = MagicMock()
        api.list_namespaced_pod.return_value = SimpleNamespace(
            items=[
                _pod("etcd-a", {"etcd_cluster": "foo", "etcd_node": "foo-0001"}, "10.0.0.1"),
                _pod("etcd-b", None, None),
            ]
        )
        platform = KubernetesWorkloadPlatform(api, timeout=3.0)

        result = await platform.list_workloads("kube-system", {"etcd_cluster": "foo"})

        api.list_namespaced_pod.assert_called_once_with(
            "kube-system", label_selector="etcd_cluster=foo", _request_timeout=3.0
        )
        assert result[0] == WorkloadInfo(
            name="etcd-a",
            namespace="kube-system",
            labels={"etcd_cluster": "foo", "etcd_node": "foo-0001"},
            pod_ip="10.0.0.1",
        )
        assert result[1].labels == {}
        assert result[1].pod_ip is None

    async def test_selector_is_sorted(self) -> None:
        api = MagicMock()
        api.list_namespaced_pod.return_value = SimpleNamespace(items=[])
        platform = KubernetesWorkloadPlatform(api)

        await platform.list_workloads("ns", {"b": "2", "a": "1"})

        assert api.list_namespaced_pod.call_args.kwargs["label_selector"] == "a=1,b=2"

    async def test_api_server_unreachable(self) -> None:
        api = MagicMock()
        api.list_namespaced_pod.side_effect = MaxRetryError(None, "/api/v1/namespaces/ns/pods")
        platform = KubernetesWorkloadPlatform(api)

        with pytest.raises(TransportError, match="Failed to list pods in ns"):
            await platform.list_workloads("ns", {"etcd_cluster": "foo"})

    async def test_api_error(self) -> None:
        api = MagicMock()
        api.list_namespaced_pod.side_effect = ApiException(status=403, reason="Forbidden")
        platform = KubernetesWorkloadPlatform(api)

        with pytest.raises(TransportError, match="403 Forbidden"):
            await platform.list_workloads("ns", {"etcd_cluster": "foo"})


class TestWorkloadIPIndex:
    async def test_build(self, platform: MemoryWorkloadPlatform) -> None:
        index = await WorkloadIPIndex.build(platform, "kube-system", "foo")
        assert len(index) == 2
        assert index.lookup("foo-0003") == "10.0.0.3"
        assert index.lookup("foo-0007") == "10.0.0.7"
        assert index.lookup("foo-0001") is None
        assert "foo-0003" in index

    async def test_build_propagates_platform_error(self) -> None:
        platform = MagicMock()
        platform.list_workloads = AsyncMock(side_effect=OSError("unreachable"))

        with pytest.raises(OSError, match="unreachable"):
            await WorkloadIPIndex.build(platform, "kube-system", "foo")

    def test_ignores_other_clusters(self) -> None:
        index = WorkloadIPIndex.from_workloads(
            [
                WorkloadInfo(name="a", labels={"etcd_cluster": "bar", "etcd_node": "bar-0001"}),
                WorkloadInfo(name="b", labels={"etcd_cluster": "foo"}),
            ],
            "foo",
        )
        assert len(index) == 0

    def test_unscheduled_workload_is_indexed(self) -> None:
        index = WorkloadIPIndex.from_workloads(
            [WorkloadInfo(name="a", labels={"etcd_cluster": "foo", "etcd_node": "foo-0001"})],
            "foo",
        )
        assert index.lookup("foo-0001") == ""


class TestWorkloadsToMemberSet:
    def test_one_member_per_workload(self) -> None:
        members = workloads_to_member_set(
            [
                WorkloadInfo(name="foo-0000", namespace="default", pod_ip="10.0.0.1"),
                WorkloadInfo(name="foo-0001", namespace="default"),
            ],
            secure_client=True,
        )
        assert sorted(members) == ["foo-0000", "foo-0001"]
        assert members["foo-0000"].pod_ip == "10.0.0.1"
        assert members["foo-0001"].secure_client
        assert members["foo-0000"].client_url() == "https://foo-0000.foo.default.svc:2379"
