# Copyright 2025 Canonical
# See LICENSE file for licensing details.

import configparser
import errno
import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Optional

from cluster import ClusterInfo, UninitializedCephConfigError
from literals import CEPH_BINARY, CEPH_COMMAND_TIMEOUT

log = logging.getLogger(__name__)


class SubVolumeGroupError(Exception):
    """Raised when a ceph subvolume group command fails."""


class SubVolumeGroupNotEmptyError(SubVolumeGroupError):
    """Raised when a subvolume group still holds subvolumes."""


class CephCLI:
    """Ceph CLI wrapper for configuration and command execution"""

    def __init__(
        self, cluster_info: ClusterInfo, config_dir: Path, timeout: int = CEPH_COMMAND_TIMEOUT
    ) -> None:
        """Initialize the CephCLI for the cluster of one namespace"""
        self._info = cluster_info
        self._config_dir = config_dir / cluster_info.namespace
        self._timeout = timeout
        self._configured = False

    @property
    def config_path(self) -> Path:
        """Path to the ceph.conf of this cluster"""
        return self._config_dir / "ceph.conf"

    @property
    def keyring_path(self) -> Path:
        """Path to the keyring of the ceph user"""
        return self._config_dir / f"ceph.{self._info.name}.keyring"

    def configure(self) -> None:
        """Create the ceph.conf and keyring files"""
        if not self._info.mon_hosts or not self._info.key:
            raise UninitializedCephConfigError(
                f"Ceph config for namespace '{self._info.namespace}' has no monitors or key"
            )
        self._config_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        self._write_config()
        self._write_keyring()
        self._configured = True

    def command(self, *args: str, timeout: Optional[int] = None) -> str:
        """Run a command and return the output"""
        if not self._configured:
            self.configure()
        cmd = [CEPH_BINARY, "--conf", self.config_path.as_posix(), "--user", self._info.user]
        cmd.extend(args)
        log.debug("Running %s", " ".join(cmd))
        return subprocess.check_output(
            cmd, timeout=timeout or self._timeout, stderr=subprocess.PIPE
        ).decode("UTF-8")

    def command_json(self, *args: str, timeout: Optional[int] = None) -> Any:
        """Run a command and return the JSON output"""
        result = self.command("--format", "json", *args, timeout=timeout)
        return json.loads(result)

    def _write_config(self) -> None:
        """Write Ceph CLI .conf file"""
        config = configparser.ConfigParser()
        config["global"] = {
            "fsid": self._info.fsid,
            "auth cluster required": "cephx",
            "auth service required": "cephx",
            "auth client required": "cephx",
            "keyring": self.keyring_path.as_posix(),
            "mon host": ",".join(self._info.mon_hosts),
            "log to syslog": "false",
            "debug mon": "1/5",
            "debug ms": "0/0",
        }
        config["client"] = {"log file": "/dev/stderr"}

        with self.config_path.open("w") as fp:
            config.write(fp)

    def _write_keyring(self) -> None:
        """Write Ceph CLI keyring file"""
        config = configparser.ConfigParser()
        config[self._info.name] = {"key": self._info.key}
        with self.keyring_path.open("w") as fp:
            config.write(fp)


def _has_errno(error: subprocess.CalledProcessError, code: int) -> bool:
    """Whether a failed ceph command reported the given errno.

    The "Error <ERRNO>" line on stderr decides. The exit status alone is
    trusted only when stderr is empty, as argument parsing errors also exit
    with 2, the value of ENOENT.
    """
    stderr = error.stderr or b""
    if isinstance(stderr, bytes):
        stderr = stderr.decode("UTF-8", errors="replace")
    if stderr.strip():
        return f"Error {errno.errorcode[code]}" in stderr
    return error.returncode == code


def create_subvolume_group(cli: CephCLI, volume: str, group: str) -> None:
    """Create a CephFS subvolume group.

    Ceph treats creating an existing group as a success.

    Raises:
        SubVolumeGroupError: if the ceph command fails.
    """
    log.info("Creating subvolume group %s in filesystem %s", group, volume)
    try:
        cli.command("fs", "subvolumegroup", "create", volume, group)
    except subprocess.SubprocessError as e:
        raise SubVolumeGroupError(
            f"failed to create ceph filesystem subvolume group '{group}'"
        ) from e


def delete_subvolume_group(cli: CephCLI, volume: str, group: str) -> None:
    """Remove a CephFS subvolume group.

    A group which no longer exists counts as removed.

    Raises:
        SubVolumeGroupNotEmptyError: if the group still holds subvolumes.
        SubVolumeGroupError: if the ceph command fails otherwise.
    """
    log.info("Deleting subvolume group %s from filesystem %s", group, volume)
    try:
        cli.command("fs", "subvolumegroup", "rm", volume, group)
    except subprocess.CalledProcessError as e:
        # Error ENOTEMPTY: error in rmdir /volumes/csi
        if _has_errno(e, errno.ENOTEMPTY):
            raise SubVolumeGroupNotEmptyError(
                f"failed to delete ceph filesystem subvolume group '{group}', "
                "remove the subvolumes first"
            ) from e
        if _has_errno(e, errno.ENOENT):
            log.info("Subvolume group %s not found in filesystem %s", group, volume)
            return
        raise SubVolumeGroupError(
            f"failed to delete ceph filesystem subvolume group '{group}'"
        ) from e
    except subprocess.SubprocessError as e:
        raise SubVolumeGroupError(
            f"failed to delete ceph filesystem subvolume group '{group}'"
        ) from e
    log.info("Deleted subvolume group %s", group)
