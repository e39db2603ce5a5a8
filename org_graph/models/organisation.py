from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field


class Identifier(BaseModel):
    authority: str = Field(..., description="Issuing authority, e.g. a FactSet or LEI URI")
    identifier_value: str = Field(..., description="Value assigned by the authority")


class AlternativeIdentifiers(BaseModel):
    """Other identifiers the same organisation is known by."""
    factset_identifier: Optional[str] = None
    uuids: List[str] = Field(default_factory=list, description="Every uuid this organisation has been published under")
    tme: List[str] = Field(default_factory=list, description="TME identifiers")


# Node property holding each alternative identifier field
ALTERNATIVE_IDENTIFIER_PROPERTIES = {
    "factset_identifier": "factset_identifier",
    "uuids": "alternative_uuids",
    "tme": "tme_identifiers",
}


class Organisation(BaseModel):
    """An organisation concept stored as a Thing node keyed by uuid."""
    uuid: str = Field(..., min_length=1, description="Unique node identifier")
    type: Literal["Organisation", "Company", "PublicCompany"] = "Organisation"
    proper_name: Optional[str] = None
    legal_name: Optional[str] = None
    short_name: Optional[str] = None
    hidden_label: Optional[str] = None
    former_names: List[str] = Field(default_factory=list)
    trade_names: List[str] = Field(default_factory=list)
    local_names: List[str] = Field(default_factory=list)
    tme_labels: List[str] = Field(default_factory=list)
    parent_organisation: Optional[str] = Field(None, description="uuid of the parent organisation")
    industry_classification: Optional[str] = Field(None, description="uuid of the industry classification")
    alternative_identifiers: AlternativeIdentifiers = Field(default_factory=AlternativeIdentifiers)
    identifiers: List[Identifier] = Field(default_factory=list)

    def node_properties(self) -> Dict[str, Any]:
        """Scalar/list properties written onto the node (no nulls, no empty lists)."""
        props = self.model_dump(
            include={
                "uuid",
                "proper_name",
                "legal_name",
                "short_name",
                "hidden_label",
                "former_names",
                "trade_names",
                "local_names",
                "tme_labels",
            }
        )
        alt = self.alternative_identifiers.model_dump()
        for field, prop in ALTERNATIVE_IDENTIFIER_PROPERTIES.items():
            props[prop] = alt[field]
        return {k: v for k, v in props.items() if v not in (None, [])}

    @classmethod
    def from_node_properties(cls, props: Dict[str, Any], **extra) -> "Organisation":
        props = dict(props)
        alt = {field: props.pop(prop) for field, prop in ALTERNATIVE_IDENTIFIER_PROPERTIES.items() if prop in props}
        return cls(**props, alternative_identifiers=AlternativeIdentifiers(**alt), **extra)


class CypherStatement(BaseModel):
    """One statement of a batch: query text plus bound parameters."""
    query: str
    parameters: Dict[str, Any] = Field(default_factory=dict)

    def as_tuple(self):
        return self.query, dict(self.parameters)
