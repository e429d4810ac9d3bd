"""Polymorphic Resource Envelope.

Fields declared as "any resource" (``DomainResource.contained``,
``Bundle.entry.resource``) hold a value whose concrete type is only known
from its discriminant on the wire. The envelope resolves that discriminant
through the type registry, so neither codec needs a switch over resource
types.
"""

import logging
from dataclasses import dataclass
from typing import Callable, TypeVar

from fhir_codec.domain.ports import DecodeError
from fhir_codec.domain.registry import registry
from fhir_codec.domain.resource import Resource

logger = logging.getLogger(__name__)

T = TypeVar("T")


def resolve_resource_type(discriminant: str, path: str = "") -> type:
    """Resolve a resource class from its discriminant.

    Raises:
        DecodeError: If no resource with that type is registered
    """
    klass = registry.get_resource(discriminant)
    if klass is None:
        logger.warning(f"Rejected unknown resource type {discriminant!r} at {path or '<root>'}")
        raise DecodeError(
            f"unknown resource type: {discriminant}",
            type_name=discriminant,
            field="resourceType",
            path=path or None,
        )
    return klass


@dataclass(frozen=True)
class ResourceEnvelope:
    """Tagged wrapper around a resource of any registered type.

    Attributes:
        resource: The wrapped resource; downstream code only relies on
            the common ``Resource`` capability
    """

    resource: Resource

    @property
    def resource_type(self) -> str:
        return self.resource.resource_type

    @classmethod
    def open(cls, discriminant: str, decode: Callable[[type], Resource], path: str = "") -> "ResourceEnvelope":
        """Decode a resource whose type is named by ``discriminant``.

        Parameters:
            discriminant: ``resourceType`` value or XML element local name
            decode: Callback decoding the body into the resolved class
            path: Document path, for error messages

        Returns:
            ResourceEnvelope: Envelope around the fully decoded resource

        Raises:
            DecodeError: If the discriminant is unknown or decoding fails
        """
        klass = resolve_resource_type(discriminant, path)
        return cls(resource=decode(klass))

    def seal(self, encode: Callable[[str, Resource], T]) -> T:
        """Encode the wrapped resource, handing the writer its discriminant first."""
        return encode(self.resource_type, self.resource)
