"""Product classification service.

This module provides rule-based product attribute classification:
- Text normalization shared by every comparison
- Single and composite condition evaluation
- Score-based conflict resolution across rules

Key Components:
    - RuleEngine: Applies rules and list attributes to product names
    - normalize_text: Accent/case/punctuation folding
    - evaluate: Composite condition chain evaluation
"""
from catalog_pipeline.services.classification.normalizer import (
    normalize_text,
    normalize_terms,
)
from catalog_pipeline.services.classification.conditions import (
    OPTIONAL_MATCH_BONUS,
    CompositeOutcome,
    LegacyRuleForm,
    NormalizedCondition,
    matches,
    matches_rule_form,
    evaluate,
    rule_to_conditions,
    conditions_to_rule_form,
)
from catalog_pipeline.services.classification.engine import (
    RuleEngine,
    classify,
    compute_confidence,
    specificity_score,
    to_product,
)

__all__ = [
    "normalize_text",
    "normalize_terms",
    "OPTIONAL_MATCH_BONUS",
    "CompositeOutcome",
    "LegacyRuleForm",
    "NormalizedCondition",
    "matches",
    "matches_rule_form",
    "evaluate",
    "rule_to_conditions",
    "conditions_to_rule_form",
    "RuleEngine",
    "classify",
    "compute_confidence",
    "specificity_score",
    "to_product",
]
