# Copyright 2025 Canonical
# See LICENSE file for licensing details.
"""Helpers shared by controllers of Rook custom resources.

The pieces here mirror what a controller framework hands to a reconciler:
the identity of the object to reconcile, the result telling the framework
when to come back, finalizer handling and the readiness check of the
CephCluster owning the namespace.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from lightkube import ApiError, Client
from lightkube.types import PatchType

from crds import CephCluster
from literals import (
    CLEANUP_CONFIRMATION,
    FINALIZER,
    IMMEDIATE_RETRY_DELAY,
    PHASE_CONNECTED,
    WAIT_FOR_CLUSTER_DELAY,
    WAIT_FOR_OPERATOR_INIT_DELAY,
)

log = logging.getLogger(__name__)


class ReconcileError(Exception):
    """Raised when a reconciliation pass fails and must be retried."""


@dataclass(frozen=True)
class Request:
    """Identity of the object to reconcile."""

    name: str
    namespace: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class ReconcileResult:
    """Tells the framework whether and when to reconcile an object again."""

    requeue: bool = False
    requeue_after: float = 0.0
    reason: str = ""


DONE = ReconcileResult()
IMMEDIATE_RETRY = ReconcileResult(requeue=True, requeue_after=IMMEDIATE_RETRY_DELAY)
WAIT_FOR_CLUSTER = ReconcileResult(
    requeue=True,
    requeue_after=WAIT_FOR_CLUSTER_DELAY,
    reason="waiting for the CephCluster to be ready",
)
WAIT_FOR_OPERATOR_INIT = ReconcileResult(
    requeue=True,
    requeue_after=WAIT_FOR_OPERATOR_INIT_DELAY,
    reason="waiting for the operator to be initialized",
)


@dataclass(frozen=True)
class Readiness:
    """Outcome of the CephCluster readiness check."""

    ready: bool
    cluster_exists: bool
    result: ReconcileResult = DONE


def is_deleting(obj: Any) -> bool:
    """Whether the object carries a deletion timestamp."""
    return bool(obj.metadata and obj.metadata.deletionTimestamp)


def _patch_finalizers(client: Client, obj: Any, finalizers: List[str]) -> None:
    meta = obj.metadata
    patch: Dict[str, Any] = {"metadata": {"finalizers": finalizers}}
    if meta.resourceVersion:
        patch["metadata"]["resourceVersion"] = meta.resourceVersion
    client.patch(type(obj), meta.name, patch, namespace=meta.namespace, patch_type=PatchType.MERGE)
    meta.finalizers = finalizers


def add_finalizer_if_not_present(client: Client, obj: Any, finalizer: str = FINALIZER) -> bool:
    """Add the finalizer to the object unless it is there already.

    Returns True if the object was patched.
    """
    finalizers = list(obj.metadata.finalizers or [])
    if finalizer in finalizers:
        return False
    log.debug("Adding finalizer %s on %s", finalizer, obj.metadata.name)
    _patch_finalizers(client, obj, finalizers + [finalizer])
    return True


def remove_finalizer(client: Client, obj: Any, finalizer: str = FINALIZER) -> bool:
    """Remove the finalizer from the object.

    The patch is built from a fresh copy of the object, as status writes
    earlier in the pass move its resourceVersion. An object that disappeared
    in the meantime counts as done.
    Returns True if the object was patched.
    """
    meta = obj.metadata
    if finalizer not in (meta.finalizers or []):
        return False
    log.debug("Removing finalizer %s on %s", finalizer, meta.name)
    try:
        latest = client.get(type(obj), name=meta.name, namespace=meta.namespace)
        finalizers = list(latest.metadata.finalizers or [])
        if finalizer in finalizers:
            _patch_finalizers(client, latest, [f for f in finalizers if f != finalizer])
    except ApiError as e:
        if e.status.code == 404:
            log.debug("Object %s already gone, finalizer removed", meta.name)
            return False
        raise
    removed = finalizer in finalizers
    meta.finalizers = list(latest.metadata.finalizers or [])
    return removed


def _cluster_marked_for_cleanup(cluster: Any) -> bool:
    if not is_deleting(cluster):
        return False
    cleanup = (cluster.get("spec") or {}).get("cleanupPolicy") or {}
    return cleanup.get("confirmation") == CLEANUP_CONFIRMATION


def is_ready_to_reconcile(client: Client, namespace: str, controller_name: str) -> Readiness:
    """Check that the CephCluster of a namespace can accept ceph commands."""
    try:
        clusters = list(client.list(CephCluster, namespace=namespace))
    except ApiError as e:
        log.error(
            "%s: failed to list CephClusters in namespace %s. %s", controller_name, namespace, e
        )
        return Readiness(ready=False, cluster_exists=True, result=IMMEDIATE_RETRY)

    if not clusters:
        log.debug("%s: CephCluster resource not found in namespace %s", controller_name, namespace)
        return Readiness(ready=False, cluster_exists=False, result=WAIT_FOR_CLUSTER)

    cluster = clusters[0]
    if len(clusters) > 1:
        log.warning(
            "%s: found %d CephClusters in namespace %s, using %s",
            controller_name,
            len(clusters),
            namespace,
            cluster.metadata.name,
        )

    if _cluster_marked_for_cleanup(cluster):
        log.info(
            "%s: CephCluster %s is being destroyed, treating it as removed",
            controller_name,
            cluster.metadata.name,
        )
        return Readiness(ready=False, cluster_exists=False, result=WAIT_FOR_CLUSTER)

    spec = cluster.get("spec") or {}
    status = cluster.get("status") or {}
    if (spec.get("external") or {}).get("enable") and status.get("phase") != PHASE_CONNECTED:
        log.info(
            "%s: external CephCluster %s is not connected yet",
            controller_name,
            cluster.metadata.name,
        )
        return Readiness(ready=False, cluster_exists=True, result=WAIT_FOR_CLUSTER)

    health = (status.get("ceph") or {}).get("health")
    if not health:
        log.info(
            "%s: CephCluster %s found but ceph health is not reported yet",
            controller_name,
            cluster.metadata.name,
        )
        return Readiness(ready=False, cluster_exists=True, result=WAIT_FOR_CLUSTER)

    return Readiness(ready=True, cluster_exists=True)
