# Copyright 2025 Canonical
# See LICENSE file for licensing details.
"""Connection details for the Ceph cluster running in a namespace."""

import base64
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Type, Union

from lightkube import ApiError, Client
from lightkube.resources.core_v1 import ConfigMap, Secret

from literals import DEFAULT_CEPH_USER, MON_ENDPOINTS_CONFIGMAP_NAME, MON_SECRET_NAME

log = logging.getLogger(__name__)


class ClusterInfoError(Exception):
    """Raised when the connection details cannot be read."""


class UninitializedCephConfigError(ClusterInfoError):
    """Raised when the cluster connection details do not exist yet."""


@dataclass(frozen=True)
class ClusterInfo:
    """Credentials and monitor endpoints needed to run ceph commands."""

    namespace: str
    fsid: str
    user: str
    key: str
    mon_hosts: Tuple[str, ...] = ()

    @property
    def name(self) -> str:
        """Ceph entity name of the user, e.g. client.admin."""
        return f"client.{self.user}"


def _decode(data: Optional[Dict[str, str]]) -> Dict[str, str]:
    """Decode base64 values of secret data."""
    return {k: base64.b64decode(v).decode("UTF-8") for k, v in (data or {}).items()}


def parse_mon_endpoints(raw: str) -> Tuple[str, ...]:
    """Parse the monitor mapping, e.g. 'a=10.0.0.1:6789,b=10.0.0.2:6789'."""
    hosts = []
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        _, _, host = entry.rpartition("=")
        hosts.append(host)
    return tuple(hosts)


def _get(
    client: Client, res: Type[Union[Secret, ConfigMap]], name: str, namespace: str
) -> Union[Secret, ConfigMap]:
    try:
        return client.get(res, name=name, namespace=namespace)
    except ApiError as e:
        if e.status.code == 404:
            raise UninitializedCephConfigError(
                f"{res.__name__} '{name}' not found in namespace '{namespace}', "
                "the cluster connection details are not created yet"
            ) from e
        raise ClusterInfoError(
            f"failed to get {res.__name__} '{name}' in namespace '{namespace}'"
        ) from e


def load_cluster_info(client: Client, namespace: str) -> ClusterInfo:
    """Load the connection details of the cluster in a namespace.

    Both the mon secret and the mon endpoints config map are read on every call.

    Raises:
        UninitializedCephConfigError: if the connection details are not populated yet.
        ClusterInfoError: if the Kubernetes API cannot be read.
    """
    secret = _get(client, Secret, MON_SECRET_NAME, namespace)
    data = _decode(secret.data)

    fsid = data.get("fsid")
    key = data.get("ceph-secret") or data.get("admin-secret")
    if not fsid or not key:
        raise UninitializedCephConfigError(
            f"Secret '{MON_SECRET_NAME}' in namespace '{namespace}' is missing the fsid or key"
        )
    user = data.get("ceph-username") or DEFAULT_CEPH_USER
    user = user[len("client.") :] if user.startswith("client.") else user

    configmap = _get(client, ConfigMap, MON_ENDPOINTS_CONFIGMAP_NAME, namespace)
    mon_hosts = parse_mon_endpoints((configmap.data or {}).get("data", ""))
    if not mon_hosts:
        raise UninitializedCephConfigError(
            f"ConfigMap '{MON_ENDPOINTS_CONFIGMAP_NAME}' in namespace '{namespace}' "
            "lists no monitors"
        )

    log.debug("Loaded cluster info for namespace %s with mons %s", namespace, mon_hosts)
    return ClusterInfo(namespace=namespace, fsid=fsid, user=user, key=key, mon_hosts=mon_hosts)
