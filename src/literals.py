# Copyright 2025 Canonical
# See LICENSE file for licensing details.

from pathlib import Path

CONTROLLER_NAME = "ceph-fs-subvolumegroup-controller"

# https://rook.io/docs/rook/latest/CRDs/Shared-Filesystem/ceph-fs-subvolumegroup-crd/
CEPH_API_GROUP = "ceph.rook.io"
CEPH_API_VERSION = "v1"

KIND_CEPH_CLUSTER = "CephCluster"
KIND_CEPH_FILESYSTEM = "CephFilesystem"
KIND_SUBVOLUMEGROUP = "CephFilesystemSubVolumeGroup"

PLURAL_CEPH_CLUSTER = "cephclusters"
PLURAL_CEPH_FILESYSTEM = "cephfilesystems"
PLURAL_SUBVOLUMEGROUP = "cephfilesystemsubvolumegroups"

FINALIZER = f"{KIND_SUBVOLUMEGROUP.lower()}.{CEPH_API_GROUP}"

# Status phases written to the subvolume group
PHASE_PROGRESSING = "Progressing"
PHASE_READY = "Ready"
PHASE_FAILURE = "Failure"
PHASE_CONNECTED = "Connected"

# Resources holding the connection details of a cluster
MON_SECRET_NAME = "rook-ceph-mon"
MON_ENDPOINTS_CONFIGMAP_NAME = "rook-ceph-mon-endpoints"
DEFAULT_CEPH_USER = "client.admin"

CLEANUP_CONFIRMATION = "yes-really-destroy-data"

# Requeue delays, in seconds
IMMEDIATE_RETRY_DELAY = 1
WAIT_FOR_CLUSTER_DELAY = 10
WAIT_FOR_FILESYSTEM_DELAY = 10
WAIT_FOR_OPERATOR_INIT_DELAY = 10

OPERATOR_NOT_INITIALIZED_MESSAGE = (
    "skipping orchestration, waiting for the operator to be initialized"
)

CEPH_BINARY = "/usr/bin/ceph"
CEPH_COMMAND_TIMEOUT = 60
DEFAULT_CONFIG_DIR = Path("ceph-conf").resolve()
