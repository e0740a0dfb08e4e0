# Copyright 2025 Canonical
# See LICENSE file for licensing details.
"""Controller of CephFilesystemSubVolumeGroup resources.

Each pass drives the Ceph cluster towards the declared subvolume group:

* the group is created in the filesystem named by ``spec.filesystemName``
  once the CephCluster and the CephFilesystem are ready;
* the group is removed when the resource is deleted, after which the
  finalizer is dropped so Kubernetes can forget the object.

The phase of the resource (Progressing, Ready, Failure) is written back to
its status subresource.
"""

import logging
from typing import Any, Callable, Optional, Protocol

from lightkube import ApiError, Client
from lightkube.types import PatchType

from cluster import ClusterInfo, ClusterInfoError, UninitializedCephConfigError
from controller import (
    DONE,
    WAIT_FOR_OPERATOR_INIT,
    ReconcileError,
    ReconcileResult,
    Request,
    add_finalizer_if_not_present,
    is_deleting,
    is_ready_to_reconcile,
    remove_finalizer,
)
from crds import CephFilesystem, CephFilesystemSubVolumeGroup
from literals import (
    CONTROLLER_NAME,
    OPERATOR_NOT_INITIALIZED_MESSAGE,
    PHASE_FAILURE,
    PHASE_PROGRESSING,
    PHASE_READY,
    WAIT_FOR_FILESYSTEM_DELAY,
)
from utils import CephCLI, SubVolumeGroupError, create_subvolume_group, delete_subvolume_group


class Reconciler(Protocol):
    """Protocol for an object reconciling one kind of resource"""

    def reconcile(self, request: Request) -> ReconcileResult: ...


class SubVolumeGroupReconciler:
    """Reconciles CephFilesystemSubVolumeGroup resources."""

    def __init__(
        self,
        client: Client,
        load_cluster_info: Callable[[str], ClusterInfo],
        ceph_cli: Callable[[ClusterInfo], CephCLI],
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Set up the reconciler with its collaborators.

        :param client: lightkube client used for every Kubernetes API call
        :param load_cluster_info: returns fresh connection details for a namespace
        :param ceph_cli: builds a ceph CLI for the given connection details
        :param logger: logger of this controller
        """
        self._client = client
        self._load_cluster_info = load_cluster_info
        self._ceph_cli = ceph_cli
        self._log = logger or logging.getLogger(CONTROLLER_NAME)

    def reconcile(self, request: Request) -> ReconcileResult:
        """Run one reconciliation pass for the named subvolume group.

        Raises:
            ReconcileError: if the pass failed and should be retried.
        """
        try:
            return self._reconcile(request)
        except ReconcileError as e:
            self._log.error("failed to reconcile %s. %s", request, e)
            raise

    def _reconcile(self, request: Request) -> ReconcileResult:
        try:
            group = self._get_group(request)
        except ApiError as e:
            if e.status.code == 404:
                self._log.debug(
                    "CephFilesystemSubVolumeGroup %s not found. Ignoring since object must be "
                    "deleted.",
                    request,
                )
                return DONE
            raise ReconcileError("failed to get CephFilesystemSubVolumeGroup") from e

        # New finalizers are refused on objects being deleted
        if not is_deleting(group):
            try:
                add_finalizer_if_not_present(self._client, group)
            except ApiError as e:
                raise ReconcileError("failed to add finalizer") from e

        if not group.get("status"):
            self._update_status(request, PHASE_PROGRESSING)

        readiness = is_ready_to_reconcile(self._client, request.namespace, CONTROLLER_NAME)
        if not readiness.ready:
            # Without a CephCluster there is nothing left to clean up in ceph.
            # An existing but unready cluster has to become ready first.
            if is_deleting(group) and not readiness.cluster_exists:
                self._remove_finalizer(group)
                return DONE
            return readiness.result

        try:
            cluster_info = self._load_cluster_info(request.namespace)
        except UninitializedCephConfigError:
            self._log.info(OPERATOR_NOT_INITIALIZED_MESSAGE)
            return WAIT_FOR_OPERATOR_INIT
        except ClusterInfoError as e:
            raise ReconcileError("failed to populate cluster info") from e
        cli = self._ceph_cli(cluster_info)

        fs_name = (group.get("spec") or {}).get("filesystemName")

        if is_deleting(group):
            self._log.debug("deleting subvolume group %s", request)
            self._delete_group(cli, fs_name, request.name)
            self._remove_finalizer(group)
            return DONE

        if not fs_name:
            self._update_status(request, PHASE_FAILURE)
            raise ReconcileError(
                f"ceph filesystem subvolume group '{request.name}' has no spec.filesystemName"
            )

        try:
            filesystem = self._client.get(
                CephFilesystem, name=fs_name, namespace=request.namespace
            )
        except ApiError as e:
            if e.status.code == 404:
                raise ReconcileError(
                    f"failed to fetch ceph filesystem '{fs_name}', "
                    f"cannot create subvolumegroup '{request.name}'"
                ) from e
            raise ReconcileError(f"failed to get ceph filesystem '{fs_name}'") from e

        phase = (filesystem.get("status") or {}).get("phase")
        if phase != PHASE_READY:
            # The filesystem exists, it should become ready shortly
            self._log.info(
                "ceph filesystem %s is %s, waiting before creating subvolumegroup %s",
                fs_name,
                phase or "not reporting a phase",
                request.name,
            )
            return ReconcileResult(
                requeue=True,
                requeue_after=WAIT_FOR_FILESYSTEM_DELAY,
                reason=f"ceph filesystem '{fs_name}' is not ready, "
                f"cannot create subvolumegroup '{request.name}'",
            )

        try:
            self._create_group(cli, fs_name, request.name, request.namespace)
        except UninitializedCephConfigError:
            self._log.info(OPERATOR_NOT_INITIALIZED_MESSAGE)
            return WAIT_FOR_OPERATOR_INIT
        except SubVolumeGroupError as e:
            self._update_status(request, PHASE_FAILURE)
            raise ReconcileError(
                f"failed to create or update ceph filesystem subvolume group '{request.name}'"
            ) from e

        self._update_status(request, PHASE_READY)
        self._log.debug("done reconciling %s", request)
        return DONE

    def _get_group(self, request: Request) -> Any:
        return self._client.get(
            CephFilesystemSubVolumeGroup, name=request.name, namespace=request.namespace
        )

    def _remove_finalizer(self, group: Any) -> None:
        try:
            remove_finalizer(self._client, group)
        except ApiError as e:
            raise ReconcileError("failed to remove finalizer") from e

    def _create_group(self, cli: CephCLI, fs_name: str, name: str, namespace: str) -> None:
        self._log.info(
            "creating ceph filesystem subvolume group %s in namespace %s", name, namespace
        )
        create_subvolume_group(cli, fs_name, name)

    def _delete_group(self, cli: CephCLI, fs_name: Optional[str], name: str) -> None:
        self._log.info("deleting ceph filesystem subvolume group object %s", name)
        if not fs_name:
            raise ReconcileError(
                f"failed to delete ceph filesystem subvolume group '{name}', "
                "spec.filesystemName is not set"
            )
        try:
            delete_subvolume_group(cli, fs_name, name)
        except (SubVolumeGroupError, UninitializedCephConfigError) as e:
            raise ReconcileError(str(e)) from e
        self._log.info("deleted ceph filesystem subvolume group %s", name)

    def _update_status(self, request: Request, phase: str) -> None:
        """Write the phase of the subvolume group, logging rather than raising on failure."""
        try:
            group = self._get_group(request)
        except ApiError as e:
            if e.status.code == 404:
                self._log.debug(
                    "CephFilesystemSubVolumeGroup %s not found. Ignoring since object must be "
                    "deleted.",
                    request,
                )
                return
            self._log.warning(
                "failed to retrieve ceph filesystem subvolume group %s to update status to %s. %s",
                request,
                phase,
                e,
            )
            return

        patch = {"status": {"phase": phase}}
        if group.metadata and group.metadata.resourceVersion:
            patch["metadata"] = {"resourceVersion": group.metadata.resourceVersion}
        try:
            self._client.patch(
                CephFilesystemSubVolumeGroup.Status,
                request.name,
                patch,
                namespace=request.namespace,
                patch_type=PatchType.MERGE,
            )
        except ApiError as e:
            self._log.error(
                "failed to set ceph filesystem subvolume group %s status to %s. %s",
                request,
                phase,
                e,
            )
            return
        self._log.debug("ceph filesystem subvolume group %s status updated to %s", request, phase)
