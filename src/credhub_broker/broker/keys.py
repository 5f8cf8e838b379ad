"""Storage key derivation for instance and binding credentials.

Keys have the form::

    /<namespace>/<broker_id>/<service_id>/<kind>/<entity_id>/credentials

The ``kind`` segment keeps an instance and a binding that happen to share
an identifier on separate keys.
"""

from __future__ import annotations

from enum import Enum

DEFAULT_NAMESPACE = "c"
CREDENTIALS_SUFFIX = "credentials"


class EntityKind(str, Enum):
    """Kind of entity a credential record belongs to."""

    INSTANCE = "instances"
    BINDING = "bindings"


class InvalidKeySegmentError(ValueError):
    """A key component is empty or would change the path structure."""


def _check_segment(name: str, value: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidKeySegmentError(f"{name} must be a non-empty string")
    if "/" in value:
        raise InvalidKeySegmentError(f"{name} must not contain '/': {value!r}")
    if value in (".", ".."):
        raise InvalidKeySegmentError(f"{name} must not be a relative path segment: {value!r}")
    return value


def derive_key(
    broker_id: str,
    service_id: str,
    entity_id: str,
    kind: EntityKind,
    namespace: str = DEFAULT_NAMESPACE,
) -> str:
    """Build the canonical credential path for an entity.

    Args:
        broker_id: Identity of this broker deployment
        service_id: Service offering the entity belongs to
        entity_id: Instance or binding identifier
        kind: Whether ``entity_id`` names an instance or a binding
        namespace: Root segment of every key

    Returns:
        Slash-delimited absolute path

    Raises:
        InvalidKeySegmentError: a segment is empty or contains '/'
    """
    segments = [
        _check_segment("namespace", namespace),
        _check_segment("broker_id", broker_id),
        _check_segment("service_id", service_id),
        EntityKind(kind).value,
        _check_segment("entity_id", entity_id),
        CREDENTIALS_SUFFIX,
    ]
    return "/" + "/".join(segments)


def instance_key(broker_id: str, service_id: str, instance_id: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    return derive_key(broker_id, service_id, instance_id, EntityKind.INSTANCE, namespace)


def binding_key(broker_id: str, service_id: str, binding_id: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    return derive_key(broker_id, service_id, binding_id, EntityKind.BINDING, namespace)
