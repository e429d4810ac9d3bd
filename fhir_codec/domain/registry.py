"""Type registry for FHIR element models.

Every concrete model class registers itself here when it is defined, keyed
by its FHIR type name. The codecs resolve declared field types and resource
discriminants through this registry, so adding a type never requires a
change to either codec.
"""

import logging
from typing import Dict, List, Optional, Type

logger = logging.getLogger(__name__)


class TypeRegistry:
    """Import-time table of FHIR types.

    Types are registered once, at class definition. After ``finalize`` has
    run, the registry is only read.
    """

    def __init__(self):
        self._types: Dict[str, type] = {}
        self._resources: Dict[str, type] = {}
        self._finalized = False

    def register(self, klass: type) -> type:
        """Register a model class under its FHIR type name.

        Parameters:
            klass: Model class with a ``fhir_type`` class attribute

        Returns:
            type: The class, unchanged

        Raises:
            ValueError: If another class already uses the same type name
        """
        name = klass.fhir_type
        existing = self._types.get(name)
        if existing is not None and existing is not klass:
            raise ValueError(
                f"FHIR type {name!r} already registered by {existing.__module__}.{existing.__qualname__}"
            )
        self._types[name] = klass
        if getattr(klass, "is_resource", False) and not klass.__dict__.get("__fhir_abstract__", False):
            self._resources[name] = klass
        return klass

    def get_type(self, name: str) -> Optional[type]:
        return self._types.get(name)

    def get_resource(self, resource_type: str) -> Optional[type]:
        return self._resources.get(resource_type)

    def is_primitive(self, name: str) -> bool:
        klass = self._types.get(name)
        return klass is not None and getattr(klass, "is_primitive", False)

    def resource_types(self) -> List[str]:
        return sorted(self._resources)

    def types(self) -> List[str]:
        return sorted(self._types)

    def finalize(self) -> None:
        """Resolve forward references on every registered model."""
        if self._finalized:
            return
        namespace = {klass.__name__: klass for klass in self._types.values()}
        for klass in list(self._types.values()):
            klass.model_rebuild(force=True, _types_namespace=namespace)
        self._finalized = True
        logger.debug(
            f"Type registry finalized: {len(self._types)} types, {len(self._resources)} resources"
        )


registry = TypeRegistry()


def get_type(name: str) -> Type:
    """Look up a registered type by name.

    Raises:
        KeyError: If no type with that name is registered
    """
    klass = registry.get_type(name)
    if klass is None:
        raise KeyError(f"unknown FHIR type: {name}")
    return klass
