#!/usr/bin/env python3
# Copyright 2025 Canonical
# See LICENSE file for licensing details.
"""Entry point running the subvolume group controller under kopf."""

import functools
import logging
from typing import Any, Callable

import kopf
from lightkube import Client

from cluster import ClusterInfo, load_cluster_info
from config import OperatorConfig
from controller import Request
from literals import CEPH_API_GROUP, CEPH_API_VERSION, CONTROLLER_NAME, PLURAL_SUBVOLUMEGROUP
from subvolumegroup import Reconciler, SubVolumeGroupReconciler
from utils import CephCLI

log = logging.getLogger(__name__)

ANNOTATIONS_PREFIX = f"{CONTROLLER_NAME}.{CEPH_API_GROUP}"


def reconcile_handler(reconciler: Reconciler) -> Callable[..., None]:
    """Wrap a reconciler into a kopf handler.

    A result asking for a requeue is turned into a kopf.TemporaryError with
    the requested delay. Errors raised by the reconciler are left to kopf,
    which retries them with its own backoff.
    """

    def handler(name: str, namespace: str, **_: Any) -> None:
        result = reconciler.reconcile(Request(name=name, namespace=namespace))
        if result.requeue:
            raise kopf.TemporaryError(
                result.reason or "requeue requested", delay=result.requeue_after or 1
            )

    return handler


def configure_settings(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Keep kopf bookkeeping in annotations, the status belongs to the reconciler."""
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(
        prefix=ANNOTATIONS_PREFIX
    )
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(
        prefix=ANNOTATIONS_PREFIX
    )
    settings.posting.level = logging.WARNING


def register(registry: kopf.OperatorRegistry, reconciler: Reconciler) -> None:
    """Register the reconciler for every change of a subvolume group."""
    handler = reconcile_handler(reconciler)
    resource = (CEPH_API_GROUP, CEPH_API_VERSION, PLURAL_SUBVOLUMEGROUP)

    kopf.on.startup(registry=registry)(configure_settings)
    kopf.on.create(*resource, id="create", registry=registry)(handler)
    kopf.on.update(*resource, id="update", registry=registry)(handler)
    kopf.on.resume(*resource, id="resume", registry=registry)(handler)
    # The reconciler owns its finalizer, kopf must not add one
    kopf.on.delete(*resource, id="delete", optional=True, registry=registry)(handler)


def build_reconciler(client: Client, config: OperatorConfig) -> SubVolumeGroupReconciler:
    """Assemble the reconciler and its collaborators."""

    def ceph_cli(cluster_info: ClusterInfo) -> CephCLI:
        return CephCLI(cluster_info, config.ceph_config_dir, timeout=config.ceph_timeout)

    return SubVolumeGroupReconciler(
        client,
        functools.partial(load_cluster_info, client),
        ceph_cli,
        logger=logging.getLogger(CONTROLLER_NAME),
    )


def main() -> None:
    """Run the operator until it is stopped."""
    config = OperatorConfig.from_env()
    kopf.configure(
        debug=config.log_level == "debug",
        verbose=config.log_level == "debug",
        quiet=config.log_level == "warning",
    )

    client = Client(field_manager=config.field_manager)
    registry = kopf.OperatorRegistry()
    register(registry, build_reconciler(client, config))

    if config.clusterwide:
        log.info("Starting %s for all namespaces", CONTROLLER_NAME)
    else:
        log.info("Starting %s for namespaces %s", CONTROLLER_NAME, ", ".join(config.namespaces))
    kopf.run(
        registry=registry,
        standalone=True,
        clusterwide=config.clusterwide,
        namespaces=config.namespaces,
    )


if __name__ == "__main__":  # pragma: no cover
    main()
