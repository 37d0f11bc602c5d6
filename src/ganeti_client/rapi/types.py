"""Request and session types for the Ganeti RAPI.

Pydantic models for the data the client sends, plus the enumerations the
RAPI documents for reboot types, disk replacement modes and node roles.
Responses are not modelled here; see :mod:`ganeti_client.resources`.
"""

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, SecretStr


class RebootType(enum.Enum):
    """Instance reboot types."""

    SOFT = "soft"  # reboot inside the hypervisor
    HARD = "hard"  # restart the hypervisor process
    FULL = "full"  # shutdown, recreate configuration, start


class ReplaceDisksMode(enum.Enum):
    """Modes for replacing instance disks."""

    REPLACE_ON_PRIMARY = "replace_on_primary"
    REPLACE_ON_SECONDARY = "replace_on_secondary"
    REPLACE_NEW_SECONDARY = "replace_new_secondary"
    REPLACE_AUTO = "replace_auto"


class NodeRole(enum.Enum):
    """Roles a node can have in the cluster."""

    DRAINED = "drained"
    MASTER = "master"
    MASTER_CANDIDATE = "master-candidate"
    OFFLINE = "offline"
    REGULAR = "regular"


class ClientSession(BaseModel):
    """Connection details for one RAPI endpoint.

    Built once when the client is created and never changed afterwards.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str
    username: str | None = None
    password: SecretStr | None = None
    version: str


class InstanceSpec(BaseModel):
    """Parameters for creating an instance.

    Example::

        InstanceSpec(
            name="vm1.example.com",
            os="debootstrap+default",
            pnode="node1.example.com",
            disk_template="plain",
            hypervisor="kvm",
            vcpus=4,
            memory=4096,
            disks=[25600],
        )
    """

    name: str
    os: str
    pnode: str
    disk_template: str
    hypervisor: str | None = None
    vcpus: int | None = None
    memory: int | None = None
    disks: list[int] = []
    snode: str | None = None
    kernel_path: str | None = None
    initrd_path: str | None = None

    def to_body(self) -> dict[str, Any]:
        """Build the JSON request body.

        Optional parameters that are not set are left out, since the RAPI
        rejects explicit nulls for some of them. The secondary node is only
        sent for the ``drbd`` disk template, kernel and initrd paths only
        when a hypervisor is given.
        """
        body = self.model_dump(
            exclude_none=True,
            exclude={"snode", "kernel_path", "initrd_path"},
        )
        if self.disk_template == "drbd" and self.snode:
            body["snode"] = self.snode
        if self.hypervisor:
            if self.kernel_path:
                body["kernel_path"] = self.kernel_path
            if self.initrd_path:
                body["initrd_path"] = self.initrd_path
        return body
