# Copyright 2025 Canonical
# See LICENSE file for licensing details.
import unittest.mock as mock

import pytest
from lightkube import ApiError, Client

from cluster import ClusterInfo
from objects import NAMESPACE


@pytest.fixture()
def lk_client():
    yield mock.create_autospec(Client, instance=True)


# Autouse to prevent calling out to the k8s API via lightkube client in manager
@pytest.fixture(autouse=True)
def lk_manager_client():
    with mock.patch("manager.Client", autospec=True) as mock_lightkube:
        yield mock_lightkube.return_value


@pytest.fixture()
def api_error():
    class TestApiError(ApiError):
        def __init__(self, code: int):
            self.status = mock.MagicMock(code=code, message=f"api error {code}")

    def _make(code: int = 500) -> ApiError:
        return TestApiError(code)

    yield _make


@pytest.fixture()
def ceph_conf_directory(tmp_path):
    yield tmp_path / "ceph-conf"


@pytest.fixture()
def cluster_info():
    yield ClusterInfo(
        namespace=NAMESPACE,
        fsid="2c8f0b5e-7f3a-4f43-9c1a-6d7b3e0a2f11",
        user="admin",
        key="AQBcZ2Vl1234567890abcdef==",
        mon_hosts=("10.0.0.1:6789", "10.0.0.2:6789"),
    )
