"""Pydantic models for classification rules and custom attributes.

Rules and attributes are loaded by an external data-access layer, usually as
raw rows from the storage backend. Every field therefore accepts both the
Python name and the backend's column name (``nome``, ``tipo``, ``termos``...)
so that ``Rule.model_validate(row)`` works on rows as they come.

Malformed rule data never raises at match time: an unknown ``match_type`` or
an empty ``terms`` list simply never matches. Only structurally impossible
input (e.g. ``terms`` that is not a list) is rejected by validation.
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class MatchType(str, Enum):
    """Supported single-condition match types."""
    CONTAINS = "contains"
    EXACT = "exact"
    STARTS_WITH = "startsWith"
    CONTAINS_ALL = "containsAll"
    NOT_CONTAINS = "notContains"


class JoinOperator(str, Enum):
    """How a composite condition combines with the next one."""
    AND = "AND"
    OR = "OR"


class AttributeKind(str, Enum):
    """Custom attribute extraction strategies."""
    LIST = "list"
    RULES = "rules"


# Backend spelling of attribute kinds
_KIND_ALIASES = {"lista": AttributeKind.LIST.value, "regras": AttributeKind.RULES.value}


def _new_condition_id() -> str:
    return uuid4().hex[:7]


def _none_to_list(v: Any) -> Any:
    return [] if v is None else v


class Condition(BaseModel):
    """One atomic test inside a composite rule.
    
    ``join_operator`` describes how this condition combines with the NEXT
    condition in the sequence; the operator of the last one is unused.
    """
    
    model_config = ConfigDict(populate_by_name=True)
    
    id: str = Field(default_factory=_new_condition_id)
    match_type: str = Field(
        default=MatchType.CONTAINS.value,
        validation_alias=AliasChoices("match_type", "matchType", "tipo"),
    )
    terms: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("terms", "termos"),
    )
    join_operator: str = Field(
        default=JoinOperator.AND.value,
        validation_alias=AliasChoices("join_operator", "joinOperator", "operador"),
    )
    mandatory: bool = Field(
        default=True,
        validation_alias=AliasChoices("mandatory", "obrigatorio"),
    )
    
    @field_validator("terms", mode="before")
    @classmethod
    def validate_terms(cls, v: Any) -> Any:
        """Treat a missing term list as empty."""
        return _none_to_list(v)


_CONDITION_TYPE_KEYS = ("match_type", "matchType", "tipo")
_CONDITION_TERM_KEYS = ("terms", "termos")


def _is_condition_like(entry: Any) -> bool:
    if isinstance(entry, Condition):
        return True
    if not isinstance(entry, dict):
        return False
    return (
        any(k in entry for k in _CONDITION_TYPE_KEYS)
        and any(k in entry for k in _CONDITION_TERM_KEYS)
    )


class Rule(BaseModel):
    """A configured text-match condition mapping to one output field/value.
    
    ``order`` defines the application sequence. Several active rules may
    target the same ``target_field``; only the highest-scoring match wins.
    When ``conditions`` holds a well-formed composite it replaces the legacy
    ``match_type``/``terms``/``exclusion_terms`` test.
    """
    
    model_config = ConfigDict(populate_by_name=True)
    
    id: Optional[Union[int, str]] = None
    name: str = Field(default="", validation_alias=AliasChoices("name", "nome"))
    match_type: str = Field(
        default=MatchType.CONTAINS.value,
        validation_alias=AliasChoices("match_type", "matchType", "tipo"),
    )
    terms: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("terms", "termos"),
    )
    exclusion_terms: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("exclusion_terms", "exclusionTerms", "termos_exclusao"),
    )
    target_field: str = Field(
        validation_alias=AliasChoices("target_field", "targetField", "campo_destino"),
    )
    target_value: str = Field(
        validation_alias=AliasChoices("target_value", "targetValue", "valor_destino"),
    )
    linked_category_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("linked_category_id", "linkedCategoryId", "categoria_id"),
    )
    base_points: int = Field(
        default=0,
        validation_alias=AliasChoices("base_points", "basePoints", "pontuacao"),
    )
    auto_gender_value: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("auto_gender_value", "autoGenderValue", "genero_automatico"),
    )
    active: bool = Field(default=True, validation_alias=AliasChoices("active", "ativo"))
    order: int = Field(default=0, validation_alias=AliasChoices("order", "ordem"))
    search_fields: List[str] = Field(
        default_factory=lambda: ["name"],
        validation_alias=AliasChoices("search_fields", "searchFields", "campos_pesquisa"),
    )
    conditions: Optional[List[Condition]] = Field(
        default=None,
        validation_alias=AliasChoices("conditions", "condicoes"),
    )
    
    @field_validator("terms", "exclusion_terms", "search_fields", mode="before")
    @classmethod
    def validate_lists(cls, v: Any) -> Any:
        """Treat missing lists as empty."""
        return _none_to_list(v)
    
    @field_validator("conditions", mode="before")
    @classmethod
    def validate_conditions(cls, v: Any) -> Any:
        """Keep only a well-formed composite; anything else means "absent".
        
        The backend stores conditions as free JSON, so an empty list, an
        object or a list with incomplete entries falls back to the legacy
        single-condition form instead of failing the whole rule.
        """
        if not isinstance(v, list) or not v:
            return None
        if not all(_is_condition_like(entry) for entry in v):
            return None
        return v


class CustomAttribute(BaseModel):
    """User-defined attribute extracted from product names.
    
    For ``kind == "list"`` extraction is whole-word containment of any of
    ``values`` in the normalized product text.
    """
    
    model_config = ConfigDict(populate_by_name=True)
    
    id: Optional[Union[int, str]] = None
    name: str = Field(validation_alias=AliasChoices("name", "nome"))
    kind: str = Field(
        default=AttributeKind.LIST.value,
        validation_alias=AliasChoices("kind", "tipo"),
    )
    values: Optional[List[str]] = Field(
        default=None,
        validation_alias=AliasChoices("values", "valores"),
    )
    config: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("config", "configuracao"),
    )
    active: bool = Field(default=True, validation_alias=AliasChoices("active", "ativo"))
    
    @field_validator("kind", mode="before")
    @classmethod
    def validate_kind(cls, v: Any) -> Any:
        """Map backend spellings (``lista``/``regras``) to canonical kinds."""
        if isinstance(v, str):
            return _KIND_ALIASES.get(v, v)
        return v
    
    @field_validator("config", mode="before")
    @classmethod
    def validate_config(cls, v: Any) -> Any:
        """Treat a null configuration as empty."""
        return {} if v is None else v
    
    @property
    def is_list(self) -> bool:
        """True for whole-word list extraction attributes."""
        return self.kind == AttributeKind.LIST.value
