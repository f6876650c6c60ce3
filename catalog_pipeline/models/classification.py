"""Models for classifier input and output."""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)


def _stringify(v: Any) -> Any:
    """Spreadsheet cells arrive as numbers as often as strings."""
    if v is None or isinstance(v, str):
        return v
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return str(v)


class ProductInput(BaseModel):
    """A product record submitted for classification.
    
    Only ``name`` is required. Variations and code can be selected as search
    text by rules; any other key (price, stock, source file...) is kept as
    an extra attribute and travels with the product through the pipeline.
    """
    
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    
    id: Optional[Union[int, str]] = None
    name: str = Field(validation_alias=AliasChoices("name", "nome"))
    variation_1: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("variation_1", "variacao_1"),
    )
    variation_2: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("variation_2", "variacao_2"),
    )
    code: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("code", "codigo"),
    )
    
    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> Any:
        """Coerce numeric names to text and null to empty."""
        return "" if v is None else _stringify(v)
    
    @field_validator("variation_1", "variation_2", "code", mode="before")
    @classmethod
    def validate_optional_text(cls, v: Any) -> Any:
        """Coerce numeric cells to text."""
        return _stringify(v)


class ClassificationResult(BaseModel):
    """Structured attributes assigned to one product name.
    
    Produced fresh for every classified product and frozen once returned.
    ``confidence`` is a 0-100 heuristic combining how many fields were filled
    and how strong the winning rules were; it is not a probability.
    """
    
    model_config = ConfigDict(frozen=True)
    
    category: Optional[str] = None
    category_id: Optional[int] = None
    subcategory: Optional[str] = None
    gender: Optional[str] = None
    age_range: Optional[str] = None
    brand: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None
    material: Optional[str] = None
    style: Optional[str] = None
    extra_attributes: Mapping[str, str] = Field(default_factory=dict, validate_default=True)
    confidence: int = Field(default=0, ge=0, le=100)
    applied_rule_names: Tuple[str, ...] = ()
    
    @field_validator("extra_attributes")
    @classmethod
    def freeze_extra_attributes(cls, v: Mapping[str, str]) -> Mapping[str, str]:
        """Expose extras read-only so a returned result cannot change."""
        return MappingProxyType(dict(v))
    
    @field_serializer("extra_attributes")
    def serialize_extra_attributes(self, v: Mapping[str, str]) -> dict:
        return dict(v)


@dataclass(frozen=True)
class ClassifiedItem:
    """A product paired with its classification."""
    product: ProductInput
    result: ClassificationResult


class BatchStats(BaseModel):
    """Summary reported when a batch run completes."""
    total: int = Field(ge=0)
    classified_count: int = Field(ge=0, description="Items with confidence > 0")
    average_confidence: float = Field(ge=0, le=100)
