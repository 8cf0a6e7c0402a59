"""Integration test fixtures for etcd-membership.

These tests require a running etcd member named ``test-0000`` that
advertises a service-style peer URL. Start one with:
    docker run --rm -p 2379:2379 quay.io/coreos/etcd:v3.5.13 etcd \
        --name test-0000 \
        --listen-client-urls http://0.0.0.0:2379 \
        --advertise-client-urls http://localhost:2379 \
        --listen-peer-urls http://0.0.0.0:2380 \
        --initial-advertise-peer-urls http://test-0000.test.default.svc:2380 \
        --initial-cluster test-0000=http://test-0000.test.default.svc:2380
"""

import os

import pytest

from etcdmembership.member import Member, MemberSet

ETCD_TEST_HOST = os.environ.get("ETCD_TEST_HOST", "localhost")


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "integration: marks tests as requiring etcd cluster")


@pytest.fixture
def etcd_host() -> str:
    """Get the test cluster host."""
    return ETCD_TEST_HOST


@pytest.fixture
def known(etcd_host: str) -> MemberSet:
    """Known members addressing the test cluster directly by host."""
    return MemberSet.of(
        Member(name="test-0000", namespace="default", pod_ip=etcd_host, self_hosted=True)
    )
