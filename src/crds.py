# Copyright 2025 Canonical
# See LICENSE file for licensing details.
"""Rook custom resources used by the subvolume group controller."""

from lightkube.generic_resource import create_namespaced_resource

from literals import (
    CEPH_API_GROUP,
    CEPH_API_VERSION,
    KIND_CEPH_CLUSTER,
    KIND_CEPH_FILESYSTEM,
    KIND_SUBVOLUMEGROUP,
    PLURAL_CEPH_CLUSTER,
    PLURAL_CEPH_FILESYSTEM,
    PLURAL_SUBVOLUMEGROUP,
)

CephCluster = create_namespaced_resource(
    CEPH_API_GROUP, CEPH_API_VERSION, KIND_CEPH_CLUSTER, PLURAL_CEPH_CLUSTER
)
CephFilesystem = create_namespaced_resource(
    CEPH_API_GROUP, CEPH_API_VERSION, KIND_CEPH_FILESYSTEM, PLURAL_CEPH_FILESYSTEM
)
CephFilesystemSubVolumeGroup = create_namespaced_resource(
    CEPH_API_GROUP, CEPH_API_VERSION, KIND_SUBVOLUMEGROUP, PLURAL_SUBVOLUMEGROUP
)
