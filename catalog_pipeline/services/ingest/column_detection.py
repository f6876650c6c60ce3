"""Header → semantic column role detection and row → product mapping."""
import re
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from catalog_pipeline.errors.exceptions import ValidationError
from catalog_pipeline.models.classification import ProductInput
from catalog_pipeline.models.imported_file import SOURCE_FILE_KEY, ColumnMapping, Row
from catalog_pipeline.services.classification.normalizer import normalize_text

logger = structlog.get_logger(__name__)


def _compile(*patterns: str) -> Tuple[re.Pattern, ...]:
    return tuple(re.compile(p) for p in patterns)


# Priority-ordered patterns per role, matched against the folded header
# (lower case, no accents, punctuation as spaces)
COLUMN_PATTERNS: Dict[str, Tuple[re.Pattern, ...]] = {
    "name": _compile(r"^nome$", r"descri", r"produto", r"^item$", r"xprod",
                     r"^name$", r"^product", r"^title$"),
    "code": _compile(r"^cod", r"^sku$", r"^id$", r"cprod"),
    "reference": _compile(r"refer", r"^ref$", r"grade", r"pai", r"parent"),
    "price": _compile(r"preco", r"valor", r"price", r"vuncom"),
    "cost": _compile(r"custo", r"cost"),
    "stock": _compile(r"estoque", r"^qtd$", r"quantidade", r"stock", r"qcom",
                      r"^qty$", r"quantity"),
    "color": _compile(r"^cor$", r"color", r"colour"),
    "size": _compile(r"tamanho", r"^size$", r"^tam$"),
}


def _fold(header: str) -> str:
    return normalize_text(header).lower()


def _detect(folded: Sequence[Tuple[str, str]], patterns: Sequence[re.Pattern]) -> Optional[str]:
    for column, key in folded:
        if any(p.search(key) for p in patterns):
            return column
    return None


def auto_detect_columns(columns: Sequence[str]) -> ColumnMapping:
    """Guess which header holds each semantic role.
    
    For every role the first column (in header order) matching any of the
    role's patterns wins. The name role falls back to the first column.
    
    Args:
        columns: Header names as found in the source files
    
    Returns:
        ColumnMapping with None for roles that were not found
    """
    folded = [(column, _fold(str(column))) for column in columns]
    detected = {role: _detect(folded, patterns) for role, patterns in COLUMN_PATTERNS.items()}
    
    if detected["name"] is None and columns:
        detected["name"] = columns[0]
    
    mapping = ColumnMapping(**detected)
    logger.debug("columns_detected", **mapping.model_dump())
    return mapping


def _cell(row: Row, column: Optional[str]):
    """Cell value, or None when unmapped or blank."""
    if column is None:
        return None
    value = row.get(column)
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return value


def build_products(rows: Sequence[Row], mapping: ColumnMapping) -> List[ProductInput]:
    """Turn merged rows into classifier input.
    
    Color and size columns become the product's first and second variation
    so rules and list attributes can search them. Price, cost, stock,
    reference and origin file travel along as extra fields.
    
    Args:
        rows: Merged rows from MultiSourceIngest
        mapping: Column roles, usually from auto_detect_columns()
    
    Returns:
        Products in row order; rows with a blank name are skipped
    
    Raises:
        ValidationError: If the mapping has no name column
    """
    if not mapping.name:
        raise ValidationError("Column mapping must define a name column")
    
    products: List[ProductInput] = []
    skipped = 0
    
    for row in rows:
        name = _cell(row, mapping.name)
        if name is None:
            skipped += 1
            continue
        
        product = ProductInput(
            name=name,
            code=_cell(row, mapping.code),
            variation_1=_cell(row, mapping.color),
            variation_2=_cell(row, mapping.size),
            price=_cell(row, mapping.price),
            cost=_cell(row, mapping.cost),
            stock=_cell(row, mapping.stock),
            reference=_cell(row, mapping.reference),
            source_file=row.get(SOURCE_FILE_KEY),
        )
        products.append(product)
    
    if skipped:
        logger.info("rows_without_name_skipped", skipped=skipped, kept=len(products))
    
    return products
