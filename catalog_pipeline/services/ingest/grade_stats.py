"""Variant (grade) statistics over a reference column."""
from collections import Counter
from typing import Optional, Sequence

from catalog_pipeline.models.imported_file import GradeStatistics, Row


def grade_statistics(
    rows: Sequence[Row],
    reference_column: Optional[str],
) -> Optional[GradeStatistics]:
    """Group rows by reference value and summarize variant groups.
    
    Rows whose reference is blank are counted in ``total_rows`` but belong
    to no group.
    
    Args:
        rows: Parsed rows
        reference_column: Column identifying the parent product
    
    Returns:
        GradeStatistics, or None without a reference column or rows
    """
    if not reference_column or not rows:
        return None
    
    groups = Counter(
        ref for ref in (str(row.get(reference_column) or "").strip() for row in rows)
        if ref
    )
    
    unique = len(groups)
    return GradeStatistics(
        total_rows=len(rows),
        unique_products=unique,
        products_with_variants=sum(1 for count in groups.values() if count > 1),
        mean_variants=sum(groups.values()) / unique if unique else 0.0,
    )
