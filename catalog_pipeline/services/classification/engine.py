"""Rule-based product attribute classifier.

Assigns categorical attributes (category, gender, brand, size, color...)
to free-text product names using configured rules and list attributes.

Strategy:
1. Normalize the product text once per search-field selection
2. Test every active rule in ``order`` and collect scored candidates per
   target field
3. Keep the highest-scoring candidate per field (earliest rule wins ties)
4. Extract list attributes by whole-word match
5. Combine breadth (fields filled) and strength (winning scores) into a
   0-100 confidence

Example:
    engine = RuleEngine(rules, attributes)
    result = engine.classify("Biquíni Azul Marinho Tamanho M")
    # result.category = "Biquíni"
    # result.color = "Azul Marinho"
"""
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import structlog

from catalog_pipeline.models.classification import (
    ClassificationResult,
    ClassifiedItem,
    ProductInput,
)
from catalog_pipeline.models.rules import CustomAttribute, MatchType, Rule
from catalog_pipeline.services.classification.conditions import (
    NormalizedCondition,
    evaluate,
    matches_rule_form,
)
from catalog_pipeline.services.classification.normalizer import normalize_text, normalize_terms

logger = structlog.get_logger(__name__)

ProductLike = Union[ProductInput, Mapping[str, Any], str]

# Specificity bonus per match type; containsAll also gets TERM_BONUS per term
TYPE_BONUS: Dict[str, int] = {
    MatchType.EXACT.value: 900,
    MatchType.STARTS_WITH.value: 700,
    MatchType.CONTAINS_ALL.value: 500,
    MatchType.CONTAINS.value: 0,
    MatchType.NOT_CONTAINS.value: -50,
}
CONTAINS_ALL_TERM_BONUS = 50

# Confidence scale: MAX_FIELDS filled fields or SCORE_CEILING total points saturate
MAX_FIELDS = 10
SCORE_CEILING = 1000
FIELDS_WEIGHT = 60
SCORE_WEIGHT = 40

# Rule target field → result field. Anything else lands in extra_attributes.
TARGET_FIELDS: Dict[str, str] = {
    "categoria": "category",
    "category": "category",
    "subcategoria": "subcategory",
    "subcategory": "subcategory",
    "genero": "gender",
    "gender": "gender",
    "faixa_etaria": "age_range",
    "age_range": "age_range",
    "marca": "brand",
    "brand": "brand",
    "estilo": "style",
    "style": "style",
}

# Lower-cased list attribute name → result field
ATTRIBUTE_BUCKETS: Dict[str, str] = {
    "cores": "color",
    "cor": "color",
    "colors": "color",
    "color": "color",
    "tamanhos": "size",
    "tamanho": "size",
    "sizes": "size",
    "size": "size",
    "materiais": "material",
    "material": "material",
    "materials": "material",
}

# Rule search field → ProductInput attribute
SEARCH_FIELDS: Dict[str, str] = {
    "name": "name",
    "nome": "name",
    "variation_1": "variation_1",
    "variacao_1": "variation_1",
    "variation_2": "variation_2",
    "variacao_2": "variation_2",
    "code": "code",
    "codigo": "code",
}
DEFAULT_SEARCH_FIELDS: Tuple[str, ...] = ("name",)


def specificity_score(rule: Rule) -> int:
    """Score of a matching rule: base points plus its match-type bonus.

    Unknown match types get no bonus (they never match anyway).
    """
    bonus = TYPE_BONUS.get(rule.match_type, 0)
    if rule.match_type == MatchType.CONTAINS_ALL.value:
        bonus += CONTAINS_ALL_TERM_BONUS * len(rule.terms)
    return rule.base_points + bonus


def compute_confidence(fields_filled: int, total_score: int) -> int:
    """Combine breadth and strength of a classification into 0-100.

    Monotonic in both inputs. Halves round up.
    """
    field_share = min(fields_filled / MAX_FIELDS, 1)
    score_share = min(total_score / SCORE_CEILING, 1)
    raw = field_share * FIELDS_WEIGHT + score_share * SCORE_WEIGHT
    return max(0, min(100, math.floor(raw + 0.5)))


def to_product(item: ProductLike) -> ProductInput:
    """Coerce a bare name or a mapping into a ProductInput."""
    if isinstance(item, ProductInput):
        return item
    if isinstance(item, str):
        return ProductInput(name=item)
    return ProductInput.model_validate(dict(item))


@dataclass(frozen=True)
class _PreparedRule:
    """An active rule with its terms normalized ahead of time."""
    rule: Rule
    terms: Tuple[str, ...]
    exclusion_terms: Tuple[str, ...]
    conditions: Optional[Tuple[NormalizedCondition, ...]]
    search_fields: Tuple[str, ...]
    score: int


@dataclass(frozen=True)
class _PreparedAttribute:
    """An active list attribute with one compiled pattern per value."""
    name: str
    patterns: Tuple[Tuple[str, re.Pattern], ...]


@dataclass
class _Candidate:
    value: str
    score: int
    rule_name: str
    category_id: Optional[int]
    auto_gender: Optional[str]


class RuleEngine:
    """Applies classification rules and list attributes to product names.

    Rules and attributes are filtered, ordered and normalized once at
    construction, so one engine can classify many products cheaply. The
    engine holds no per-product state: classifying the same input twice
    yields identical results.

    Attributes:
        rules: Active rules sorted by ``order`` (stable for equal orders)
        attributes: Active ``list`` attributes
    """

    def __init__(
        self,
        rules: Iterable[Rule],
        attributes: Iterable[CustomAttribute] = (),
    ):
        """Initialize engine with rules and custom attributes.

        Args:
            rules: Classification rules; inactive ones are ignored
            attributes: Custom attributes; only active list attributes are used
        """
        self.rules: List[Rule] = sorted(
            (r for r in rules if r.active),
            key=lambda r: r.order,
        )
        self.attributes: List[CustomAttribute] = [
            a for a in attributes if a.active and a.is_list
        ]

        self._prepared_rules = [self._prepare_rule(r) for r in self.rules]
        self._prepared_attributes = [self._prepare_attribute(a) for a in self.attributes]

        self._log = logger.bind(component="RuleEngine")
        self._log.debug(
            "rule_engine_prepared",
            rules=len(self._prepared_rules),
            attributes=len(self._prepared_attributes),
        )

    @staticmethod
    def _prepare_rule(rule: Rule) -> _PreparedRule:
        conditions = None
        if rule.conditions:
            conditions = tuple(NormalizedCondition.from_condition(c) for c in rule.conditions)

        search_fields = tuple(rule.search_fields) or DEFAULT_SEARCH_FIELDS

        return _PreparedRule(
            rule=rule,
            terms=normalize_terms(rule.terms),
            exclusion_terms=normalize_terms(rule.exclusion_terms),
            conditions=conditions,
            search_fields=search_fields,
            score=specificity_score(rule),
        )

    @staticmethod
    def _prepare_attribute(attribute: CustomAttribute) -> _PreparedAttribute:
        patterns = []
        for value in attribute.values or []:
            normalized = normalize_text(value)
            if not normalized:
                continue
            patterns.append((value, re.compile(rf"\b{re.escape(normalized)}\b")))
        return _PreparedAttribute(name=attribute.name.lower(), patterns=tuple(patterns))

    def classify(self, name: str) -> ClassificationResult:
        """Classify a bare product name."""
        return self.classify_product(ProductInput(name=name))

    def classify_product(self, product: ProductLike) -> ClassificationResult:
        """Classify a product record.

        Args:
            product: ProductInput, mapping with product fields, or bare name

        Returns:
            A new ClassificationResult; all-null with confidence 0 when
            nothing matches
        """
        product = to_product(product)
        text_cache: Dict[Tuple[str, ...], str] = {}
        candidates: Dict[str, List[_Candidate]] = {}

        for prepared in self._prepared_rules:
            text = text_cache.get(prepared.search_fields)
            if text is None:
                text = self._search_text(product, prepared.search_fields)
                text_cache[prepared.search_fields] = text

            matched, bonus = self._test_rule(text, prepared)
            if not matched:
                continue

            rule = prepared.rule
            candidates.setdefault(rule.target_field, []).append(_Candidate(
                value=rule.target_value,
                score=prepared.score + bonus,
                rule_name=rule.name,
                category_id=rule.linked_category_id,
                auto_gender=rule.auto_gender_value,
            ))

        fields: Dict[str, Any] = {}
        extras: Dict[str, str] = {}
        applied_rules: List[str] = []
        auto_gender: Optional[str] = None
        total_score = 0
        fields_filled = 0

        for target_field, field_candidates in candidates.items():
            # max() keeps the first maximal element: on equal score the rule
            # earliest in ``order`` wins
            best = max(field_candidates, key=lambda c: c.score)
            total_score += best.score
            fields_filled += 1
            applied_rules.append(best.rule_name)

            result_field = TARGET_FIELDS.get(target_field)
            if result_field is None:
                extras[target_field] = best.value
                continue

            fields[result_field] = best.value
            if result_field == "category":
                fields["category_id"] = best.category_id or None
                auto_gender = best.auto_gender

        if auto_gender and not fields.get("gender"):
            fields["gender"] = auto_gender

        if self._prepared_attributes:
            fields_filled += self._extract_attributes(product, fields, extras)

        return ClassificationResult(
            **fields,
            extra_attributes=extras,
            confidence=compute_confidence(fields_filled, total_score),
            applied_rule_names=applied_rules,
        )

    def classify_many(self, products: Iterable[ProductLike]) -> List[ClassifiedItem]:
        """Classify products in input order."""
        items = []
        for product in products:
            product = to_product(product)
            items.append(ClassifiedItem(product=product, result=self.classify_product(product)))
        return items

    @staticmethod
    def _test_rule(text: str, prepared: _PreparedRule) -> Tuple[bool, int]:
        if prepared.conditions:
            outcome = evaluate(text, prepared.conditions)
            return outcome.valid, outcome.bonus
        matched = matches_rule_form(
            text,
            prepared.rule.match_type,
            prepared.terms,
            prepared.exclusion_terms,
        )
        return matched, 0

    @staticmethod
    def _search_text(product: ProductInput, search_fields: Sequence[str]) -> str:
        parts = []
        for key in search_fields:
            attr = SEARCH_FIELDS.get(key)
            if attr is None:
                continue
            value = getattr(product, attr)
            if value:
                parts.append(value)
        return normalize_text(" ".join(parts))

    def _extract_attributes(
        self,
        product: ProductInput,
        fields: Dict[str, Any],
        extras: Dict[str, str],
    ) -> int:
        """Fill list attributes without overwriting; return assignments made."""
        text = normalize_text(" ".join(
            v for v in (product.name, product.variation_1, product.variation_2) if v
        ))
        assigned = 0

        for attribute in self._prepared_attributes:
            found = next(
                (value for value, pattern in attribute.patterns if pattern.search(text)),
                None,
            )
            if found is None:
                continue

            result_field = ATTRIBUTE_BUCKETS.get(attribute.name)
            if result_field is not None:
                if fields.get(result_field):
                    continue
                fields[result_field] = found
            else:
                if extras.get(attribute.name):
                    continue
                extras[attribute.name] = found
            assigned += 1

        return assigned


def classify(
    name: str,
    rules: Iterable[Rule],
    attributes: Iterable[CustomAttribute] = (),
) -> ClassificationResult:
    """Classify one product name with a throwaway engine.

    Prefer building a ``RuleEngine`` once when classifying many names.
    """
    return RuleEngine(rules, attributes).classify(name)
