"""Static type descriptors for schema introspection.

These models mirror the ClassInfo shape the path evaluator expects: a
namespace-qualified type name, the base type it derives from, and the
ordered list of elements with their declared types.
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

FHIR_NAMESPACE = "FHIR"
SYSTEM_NAMESPACE = "System"


class TypeSpecifier(BaseModel):
    """Namespace-qualified reference to a type, optionally as a list."""

    model_config = ConfigDict(frozen=True)

    namespace: str = FHIR_NAMESPACE
    name: str
    list: bool = False

    def qualified_name(self) -> str:
        return f"{self.namespace}.{self.name}"


class ClassInfoElement(BaseModel):
    """One declared element of a class.

    ``choices`` lists the concrete type names a choice element may hold;
    it is empty for every other element.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    type: TypeSpecifier
    choices: Tuple[str, ...] = ()


class ClassInfo(BaseModel):
    """Static description of a FHIR class."""

    model_config = ConfigDict(frozen=True)

    namespace: str = FHIR_NAMESPACE
    name: str
    base_type: Optional[TypeSpecifier] = None
    element: List[ClassInfoElement] = Field(default_factory=list)

    def get_element(self, name: str) -> Optional[ClassInfoElement]:
        for item in self.element:
            if item.name == name:
                return item
        return None
