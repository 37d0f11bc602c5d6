"""Dynamic resource model for RAPI responses.

RAPI responses are schema-less JSON objects whose keys differ between
endpoints, Ganeti versions and even single requests (bulk vs. non-bulk
listings). Instead of declaring a model per endpoint, every object is
materialized into a frozen Pydantic model that carries exactly the keys of
that response as extra fields.

Resources of the same kind ("Instance", "Node", ...) share one model class,
created on first use and kept in a process-wide registry, so callers can
compare resource types with ``type(a) is type(b)`` or ``isinstance``.
"""

import copy
from threading import Lock
from typing import Any

import pydantic
import structlog

from .errors import ShapeError

logger = structlog.get_logger(__name__)

_registry: dict[str, type["Resource"]] = {}
_registry_lock = Lock()


def normalize(key: str) -> str:
    """Turn a RAPI key into a field name.

    RAPI uses dotted keys such as ``disk.sizes`` or ``nic.macs``, which are
    not valid attribute names. Every ``.`` is replaced by ``_``.

    Args:
        key: Key as found in the JSON object.

    Returns:
        Field name under which the value is stored.
    """
    return key.replace(".", "_")


class Resource(pydantic.BaseModel):
    """A single RAPI resource built from one JSON object.

    All fields are extra fields discovered from the response; nothing is
    declared up front. Values are stored as decoded, nested objects and
    arrays included, copied so that neither the resource nor the source
    object can change the other. Instances are immutable.

    Field names in source order are available from ``model_extra``; the
    kind is the class name, see :func:`kind_of`.
    """

    model_config = pydantic.ConfigDict(extra="allow", frozen=True)

    _source: dict[str, Any] = pydantic.PrivateAttr(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        """Return a copy of the JSON object the resource was built from.

        Keys are the original ones, dotted names included.
        """
        return copy.deepcopy(self._source)

    def get(self, field: str, default: Any = None) -> Any:
        """Return the value of ``field``, or ``default`` if it is absent.

        Unlike attribute access this also works for fields whose name is
        shadowed by a model attribute (``json``, ``copy``, ``to_json``, ...).
        """
        return (self.__pydantic_extra__ or {}).get(field, default)

    def __contains__(self, field: object) -> bool:
        return field in (self.__pydantic_extra__ or {})


def kind_of(resource: Resource) -> str:
    """Return the kind name of ``resource``, e.g. ``"Instance"``."""
    return type(resource).__name__


def resource_type(kind: str) -> type[Resource]:
    """Return the model class for ``kind``, creating it on first use.

    Registration is idempotent and guarded by a lock, so concurrent first
    requests for a kind still end up with a single class.

    Args:
        kind: Resource kind name, used as the class name.

    Returns:
        Resource subclass registered for ``kind``.
    """
    with _registry_lock:
        model = _registry.get(kind)
        if model is None:
            model = pydantic.create_model(kind, __base__=Resource, __module__=__name__)
            _registry[kind] = model
            logger.debug("Registered resource kind", kind=kind)
        return model


def materialize(kind: str, json_value: Any) -> Resource:
    """Build a resource of ``kind`` from a decoded JSON object.

    Keys are normalized with :func:`normalize`. When two keys normalize to
    the same field name (``foo.bar`` and ``foo_bar``), the later one in the
    object wins and a warning is logged.

    Args:
        kind: Resource kind name.
        json_value: Decoded JSON value, must be an object.

    Returns:
        Immutable resource exposing one field per key.

    Raises:
        ShapeError: If ``json_value`` is not a JSON object.
    """
    if not isinstance(json_value, dict):
        msg = f"{kind} must be built from a JSON object, got {type(json_value).__name__}"
        raise ShapeError(msg)

    model = resource_type(kind)

    data: dict[str, Any] = {}
    for key, value in json_value.items():
        field = normalize(key)
        if field in data:
            logger.warning(
                "Resource keys collide after normalization",
                kind=kind,
                field=field,
                key=key,
            )
        data[field] = copy.deepcopy(value)

    resource = model.model_validate(data)
    resource._source = copy.deepcopy(json_value)
    return resource


def materialize_list(kind: str, json_value: Any) -> list[Resource]:
    """Build a list of resources of ``kind`` from a decoded JSON array.

    Args:
        kind: Resource kind name.
        json_value: Decoded JSON value, must be an array of objects.

    Returns:
        Resources in the order of the array.

    Raises:
        ShapeError: If ``json_value`` is not an array or one of its items
            is not an object.
    """
    if not isinstance(json_value, list):
        msg = f"{kind} list must be built from a JSON array, got {type(json_value).__name__}"
        raise ShapeError(msg)

    resources = []
    for index, item in enumerate(json_value):
        if not isinstance(item, dict):
            msg = f"{kind} list item {index} is not a JSON object"
            raise ShapeError(msg)
        resources.append(materialize(kind, item))
    return resources
