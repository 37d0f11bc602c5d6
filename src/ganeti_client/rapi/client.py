"""Ganeti RAPI client.

Provides an HTTP client with Basic authentication, thread safety and one
method per RAPI resource and verb. Responses are returned either as raw
text, as lists of strings, or as dynamic resources.
"""

import json
import threading
import time
from collections.abc import Sequence
from typing import Any

import httpx
import structlog

from ..errors import DecodeError, HTTPError, ShapeError, TransportError
from ..resources import Resource, materialize, materialize_list
from .codec import decode_body, encode_params, encode_role_body
from .types import ClientSession, InstanceSpec, NodeRole, RebootType, ReplaceDisksMode

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 30.0

# Response bodies are cut to this many characters in debug logs.
RESPONSE_LOG_LIMIT = 500


class GanetiRapiClient:
    """HTTP client for the Ganeti RAPI.

    Every operation is a single blocking request. Nothing is cached or
    retried; failures surface as :class:`~ganeti_client.errors.HTTPError`
    or :class:`~ganeti_client.errors.TransportError`.

    Thread-safe through thread-local storage of httpx.Client instances.
    Can be used as a context manager for automatic cleanup.
    """

    def __init__(
        self,
        base_url: str,
        username: str | None = None,
        password: str | None = None,
        version: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        verify: bool = True,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the RAPI client.

        When no version is given, the RAPI version is fetched once with
        ``GET /version`` and used as the path prefix of every request.

        Args:
            base_url: Base URL of the RAPI (e.g., "https://cluster:5080").
            username: RAPI user for Basic authentication.
            password: Password of the RAPI user.
            version: RAPI version path prefix; fetched when omitted.
            timeout: Request timeout in seconds (default: 30.0).
            verify: Verify the server TLS certificate.
            transport: Custom httpx transport, passed through unchanged.

        Raises:
            ValueError: If base_url is empty or timeout is not positive.
        """
        if not base_url:
            msg = "base_url cannot be empty"
            raise ValueError(msg)
        if timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)

        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._verify = verify
        self._transport = transport

        self._headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        self._auth = (
            httpx.BasicAuth(username, password or "") if username is not None else None
        )

        # Use thread-local storage for httpx.Client (thread safety)
        self._local = threading.local()

        if version is None:
            version = self._request("GET", "/version").text.strip()
            logger.info("Detected RAPI version", version=version, base_url=self.base_url)

        self.session = ClientSession(
            base_url=self.base_url,
            username=username,
            password=password,
            version=version,
        )

    @property
    def version(self) -> str:
        """RAPI version used as path prefix."""
        return self.session.version

    @property
    def client(self) -> httpx.Client:
        """Get or create thread-local httpx client.

        Each thread gets its own httpx.Client instance for thread safety.
        Clients are created lazily and reused within the same thread.

        Returns:
            Thread-local httpx.Client instance.
        """
        if not hasattr(self._local, "client") or self._local.client.is_closed:
            self._local.client = httpx.Client(
                base_url=self.base_url,
                headers=self._headers,
                auth=self._auth,
                timeout=self._timeout,
                verify=self._verify,
                transport=self._transport,
            )
        return self._local.client

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager and cleanup resources."""
        self.close()

    def close(self):
        """Close the thread-local HTTP client if open."""
        if hasattr(self._local, "client") and not self._local.client.is_closed:
            self._local.client.close()

    def _path(self, path: str) -> str:
        return f"/{self.session.version}/{path}"

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        content: str | None = None,
    ) -> httpx.Response:
        """Make HTTP request to the RAPI.

        Handles request execution, status checking and error mapping.
        Logs request details and duration.

        Args:
            method: HTTP verb.
            path: Absolute request path (e.g., "/2/instances").
            params: Optional query parameters, encoded with
                :func:`~ganeti_client.rapi.codec.encode_params`.
            content: Optional request body.

        Returns:
            Successful HTTP response.

        Raises:
            HTTPError: If the RAPI returns a non-success status.
            TransportError: If the HTTP exchange fails (connection,
                timeout, malformed content encoding).
        """
        start_time = time.time()
        query = encode_params(params or {})

        try:
            logger.debug(
                "Making API request",
                method=method,
                path=path,
                params=query,
            )
            response = self.client.request(method, path, params=query, content=content)
        except httpx.RequestError as exc:
            duration = time.time() - start_time
            logger.exception(
                "API request failed",
                method=method,
                path=path,
                duration_seconds=round(duration, 3),
            )
            msg = f"{method} {path} failed: {exc}"
            raise TransportError(msg) from exc

        duration = time.time() - start_time
        logger.debug(
            "API request completed",
            status_code=response.status_code,
            reason=response.reason_phrase,
            body=response.text[:RESPONSE_LOG_LIMIT],
            duration_seconds=round(duration, 3),
        )

        if not response.is_success:
            try:
                body = decode_body(response.text)
            except DecodeError:
                body = None
            logger.warning(
                "API returned error status",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise HTTPError(response.status_code, body)
        return response

    def _text(self, method: str, path: str, **kwargs: Any) -> str:
        return self._request(method, self._path(path), **kwargs).text.strip()

    def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        return decode_body(self._request(method, self._path(path), **kwargs).text)

    def _resource(self, kind: str, path: str, **kwargs: Any) -> Resource:
        return materialize(kind, self._json("GET", path, **kwargs))

    def _resource_list(self, kind: str, path: str, **kwargs: Any) -> list[Resource]:
        return materialize_list(kind, self._json("GET", path, **kwargs))

    def _string_list(self, path: str) -> list[str]:
        data = self._json("GET", path)
        if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
            msg = f"Expected a JSON array of strings from {path}"
            raise ShapeError(msg)
        return data

    # Cluster

    def get_version(self) -> str:
        """Return the RAPI version, e.g. ``"2"``."""
        return self._request("GET", "/version").text.strip()

    def get_info(self) -> Resource:
        """Return cluster information as an ``Info`` resource."""
        return self._resource("Info", "info")

    def redistribute_config(self) -> str:
        """Redistribute the configuration to all nodes.

        Returns:
            Job id.
        """
        return self._text("PUT", "redistribute-config")

    def get_os_list(self) -> list[str]:
        """Return the names of the operating systems available on the cluster."""
        return self._string_list("os")

    def get_tags(self) -> list[str]:
        """Return the cluster tags."""
        return self._string_list("tags")

    def add_tags(self, tags: Sequence[str], dry_run: bool = False) -> str:
        """Add tags to the cluster.

        Returns:
            Job id.
        """
        return self._text("PUT", "tags", params={"tag": list(tags), "dry-run": dry_run})

    def delete_tags(self, tags: Sequence[str], dry_run: bool = False) -> str:
        """Delete tags from the cluster.

        Returns:
            Job id.
        """
        return self._text("DELETE", "tags", params={"tag": list(tags), "dry-run": dry_run})

    # Instances

    def get_instances(self, bulk: bool = False) -> list[Resource]:
        """Return all instances on the cluster.

        Args:
            bulk: Return full details per instance instead of id and uri.

        Returns:
            List of ``Instance`` resources.
        """
        return self._resource_list("Instance", "instances", params={"bulk": bulk})

    def create_instance(self, spec: InstanceSpec, dry_run: bool = False) -> str:
        """Create an instance.

        With ``dry_run`` only the pre-execution checks are done. In both
        cases the job result lists the nodes selected for the instance.

        Args:
            spec: Instance parameters.
            dry_run: Only validate the request.

        Returns:
            Job id.
        """
        return self._text(
            "POST",
            "instances",
            params={"dry-run": dry_run},
            content=json.dumps(spec.to_body()),
        )

    def get_instance(self, name: str) -> Resource:
        """Return the details of one instance as an ``Instance`` resource."""
        return self._resource("Instance", f"instances/{name}")

    def delete_instance(self, name: str, dry_run: bool = False) -> str:
        """Delete an instance.

        Returns:
            Job id.
        """
        return self._text("DELETE", f"instances/{name}", params={"dry-run": dry_run})

    def get_instance_info(self, name: str, static: bool = False) -> str:
        """Request detailed runtime information about an instance.

        Args:
            name: Instance name.
            static: Only return static configuration data, without
                querying the instance's nodes.

        Returns:
            Job id; the information is in the job result.
        """
        return self._text("GET", f"instances/{name}/info", params={"static": static})

    def reboot_instance(
        self,
        name: str,
        reboot_type: RebootType = RebootType.SOFT,
        ignore_secondaries: bool = False,
        dry_run: bool = False,
    ) -> str:
        """Reboot an instance.

        Returns:
            Job id.
        """
        params = {
            "type": reboot_type,
            "ignore_secondaries": ignore_secondaries,
            "dry-run": dry_run,
        }
        return self._text("POST", f"instances/{name}/reboot", params=params)

    def shutdown_instance(self, name: str, dry_run: bool = False) -> str:
        """Shut an instance down.

        Returns:
            Job id.
        """
        return self._text("PUT", f"instances/{name}/shutdown", params={"dry-run": dry_run})

    def startup_instance(self, name: str, force: bool = False, dry_run: bool = False) -> str:
        """Start an instance.

        Args:
            name: Instance name.
            force: Start even if secondary disks are failing.
            dry_run: Only validate the request.

        Returns:
            Job id.
        """
        params = {"force": force, "dry-run": dry_run}
        return self._text("PUT", f"instances/{name}/startup", params=params)

    def reinstall_instance(self, name: str, os_name: str, nostartup: bool = False) -> str:
        """Install the operating system of an instance again.

        Returns:
            Job id.
        """
        params = {"os": os_name, "nostartup": nostartup}
        return self._text("POST", f"instances/{name}/reinstall", params=params)

    def replace_instance_disks(
        self,
        name: str,
        mode: ReplaceDisksMode = ReplaceDisksMode.REPLACE_AUTO,
        iallocator: str | None = None,
        remote_node: str | None = None,
        disks: Sequence[int] | None = None,
    ) -> str:
        """Replace the disks of an instance.

        ``replace_new_secondary`` needs either ``iallocator`` or
        ``remote_node``. ``replace_auto`` finds the broken disks itself.

        Args:
            name: Instance name.
            mode: Replacement mode.
            iallocator: Instance allocator used to pick a new secondary.
            remote_node: New secondary node.
            disks: Indexes of the disks to replace.

        Returns:
            Job id.
        """
        params = {
            "mode": mode,
            "iallocator": iallocator,
            "remote_node": remote_node,
            "disks": ",".join(str(disk) for disk in disks) if disks else None,
        }
        return self._text("POST", f"instances/{name}/replace-disks", params=params)

    def activate_instance_disks(self, name: str, ignore_size: bool = False) -> str:
        """Activate the disks of an instance.

        Args:
            name: Instance name.
            ignore_size: Ignore the recorded disk size, for forcing
                activation when the recorded size is wrong.

        Returns:
            Job id.
        """
        params = {"ignore_size": ignore_size}
        return self._text("PUT", f"instances/{name}/activate-disks", params=params)

    def deactivate_instance_disks(self, name: str) -> str:
        """Deactivate the disks of an instance.

        Returns:
            Job id.
        """
        return self._text("PUT", f"instances/{name}/deactivate-disks")

    def get_instance_tags(self, name: str) -> list[str]:
        """Return the tags of an instance."""
        return self._string_list(f"instances/{name}/tags")

    def add_instance_tags(self, name: str, tags: Sequence[str], dry_run: bool = False) -> str:
        """Add tags to an instance.

        Returns:
            Job id.
        """
        params = {"tag": list(tags), "dry-run": dry_run}
        return self._text("PUT", f"instances/{name}/tags", params=params)

    def delete_instance_tags(
        self,
        name: str,
        tags: Sequence[str],
        dry_run: bool = False,
    ) -> str:
        """Delete tags from an instance.

        Returns:
            Job id.
        """
        params = {"tag": list(tags), "dry-run": dry_run}
        return self._text("DELETE", f"instances/{name}/tags", params=params)

    # Jobs

    def get_jobs(self) -> list[Resource]:
        """Return all jobs as ``Job`` resources."""
        return self._resource_list("Job", "jobs")

    def get_job(self, job_id: int | str) -> Resource:
        """Return the status of a job as a ``Job`` resource.

        The resource has, among others, ``id``, ``status``, ``ops``,
        ``opstatus`` and ``opresult``. For a failed opcode its ``opresult``
        entry is ``[error_type, [description, classification]]``.
        """
        return self._resource("Job", f"jobs/{job_id}")

    def cancel_job(self, job_id: int | str) -> str:
        """Cancel a job that has not started yet."""
        return self._text("DELETE", f"jobs/{job_id}")

    # Nodes

    def get_nodes(self, bulk: bool = False) -> list[Resource]:
        """Return all nodes of the cluster.

        Args:
            bulk: Return full details per node instead of id and uri.

        Returns:
            List of ``Node`` resources.
        """
        return self._resource_list("Node", "nodes", params={"bulk": bulk})

    def get_node(self, name: str) -> Resource:
        """Return the details of one node as a ``Node`` resource."""
        return self._resource("Node", f"nodes/{name}")

    def evacuate_node(
        self,
        name: str,
        iallocator: str | None = None,
        remote_node: str | None = None,
    ) -> str:
        """Evacuate all secondary instances off a node.

        One of ``iallocator`` or ``remote_node`` must be given.

        Returns:
            Job id.
        """
        params = {"iallocator": iallocator, "remote_node": remote_node}
        return self._text("POST", f"nodes/{name}/evacuate", params=params)

    def migrate_node(self, name: str, live: bool = False) -> str:
        """Migrate all primary instances of a node.

        Args:
            name: Node name.
            live: Use live migration where available.

        Returns:
            Job id.
        """
        return self._text("POST", f"nodes/{name}/migrate", params={"live": live})

    def get_node_role(self, name: str) -> str:
        """Return the raw role body of a node, e.g. ``"master-candidate"``."""
        return self._text("GET", f"nodes/{name}/role")

    def set_node_role(self, name: str, role: NodeRole | str, force: bool = False) -> str:
        """Change the role of a node.

        Args:
            name: Node name.
            role: New role.
            force: Change the role even if the cluster becomes
                inconsistent (e.g. too few master candidates).

        Returns:
            Job id.
        """
        return self._text(
            "PUT",
            f"nodes/{name}/role",
            params={"force": force},
            content=encode_role_body(role),
        )

    def get_node_storage(
        self,
        name: str,
        storage_type: str,
        output_fields: Sequence[str],
    ) -> str:
        """Request the storage units of a node.

        Returns:
            Job id; the storage units are in the job result.
        """
        params = {"storage_type": storage_type, "output_fields": ",".join(output_fields)}
        return self._text("GET", f"nodes/{name}/storage", params=params)

    def modify_node_storage(
        self,
        name: str,
        storage_type: str,
        unit_name: str,
        allocatable: bool | None = None,
    ) -> str:
        """Modify a storage unit of a node.

        Returns:
            Job id.
        """
        params = {"storage_type": storage_type, "name": unit_name, "allocatable": allocatable}
        return self._text("PUT", f"nodes/{name}/storage/modify", params=params)

    def repair_node_storage(self, name: str, unit_name: str, storage_type: str = "lvm-vg") -> str:
        """Repair a storage unit of a node.

        Returns:
            Job id.
        """
        params = {"storage_type": storage_type, "name": unit_name}
        return self._text("PUT", f"nodes/{name}/storage/repair", params=params)

    def get_node_tags(self, name: str) -> list[str]:
        """Return the tags of a node."""
        return self._string_list(f"nodes/{name}/tags")

    def add_node_tags(self, name: str, tags: Sequence[str], dry_run: bool = False) -> str:
        """Add tags to a node.

        Returns:
            Job id.
        """
        params = {"tag": list(tags), "dry-run": dry_run}
        return self._text("PUT", f"nodes/{name}/tags", params=params)

    def delete_node_tags(self, name: str, tags: Sequence[str], dry_run: bool = False) -> str:
        """Delete tags from a node.

        Returns:
            Job id.
        """
        params = {"tag": list(tags), "dry-run": dry_run}
        return self._text("DELETE", f"nodes/{name}/tags", params=params)
