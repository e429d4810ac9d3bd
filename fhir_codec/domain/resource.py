"""Resource base classes.

A resource is a top-level composite carrying a ``resourceType``
discriminant. The discriminant is the class's FHIR type name; it is not a
stored field, so a decoded resource can never disagree with its class.
"""

from typing import Annotated, List, Optional

from fhir_codec.domain.datatypes import Meta, Narrative
from fhir_codec.domain.element import Base, Extension
from fhir_codec.domain.fields import element, primitive, resource
from fhir_codec.domain.primitives import Code, Id, Uri


class Resource(Base):
    """Base of all resources."""

    __fhir_abstract__ = True

    is_resource = True

    id: Annotated[Optional[Id], primitive("id")] = None
    meta: Annotated[Optional[Meta], element("Meta")] = None
    implicit_rules: Annotated[Optional[Uri], primitive("uri")] = None
    language: Annotated[Optional[Code], primitive("code")] = None

    @property
    def resource_type(self) -> str:
        return type(self).fhir_type

    def resource_id(self) -> Optional[str]:
        """Logical id of the resource, or None when unassigned."""
        if self.id is None:
            return None
        return self.id.value


class DomainResource(Resource):
    """Resource with narrative, contained resources and extensions."""

    __fhir_abstract__ = True

    text: Annotated[Optional[Narrative], element("Narrative")] = None
    contained: Annotated[List[Resource], resource(many=True)] = []
    extension: Annotated[List[Extension], element("Extension", many=True)] = []
    modifier_extension: Annotated[List[Extension], element("Extension", many=True)] = []
