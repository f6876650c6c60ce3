"""Single and composite match-condition evaluation.

Two condition models coexist:

* the legacy rule form: one ``match_type`` over ``terms`` plus optional
  ``exclusion_terms``. Exclusion is checked first and is absolute.
* the composite form: an ordered list of ``Condition`` objects combined
  left to right with each condition's ``join_operator``. A failing mandatory
  condition rejects the whole composite; optional conditions that match add
  a fixed bonus but never block.

They are not equivalent in general (a composite may use OR and optional
conditions, the legacy form cannot), so both evaluators are kept.
``rule_to_conditions`` and ``conditions_to_rule_form`` convert between them
for the subset both can express.
"""
from dataclasses import dataclass
from typing import NamedTuple, List, Sequence, Tuple, Union

from catalog_pipeline.errors.exceptions import ValidationError
from catalog_pipeline.models.rules import Condition, JoinOperator, MatchType, Rule
from catalog_pipeline.services.classification.normalizer import normalize_terms

# Score added for every optional composite condition that matches
OPTIONAL_MATCH_BONUS = 25


class CompositeOutcome(NamedTuple):
    """Result of a composite evaluation."""
    valid: bool
    bonus: int


class LegacyRuleForm(NamedTuple):
    """The legacy single-condition shorthand of a rule."""
    match_type: str
    terms: List[str]
    exclusion_terms: List[str]


@dataclass(frozen=True)
class NormalizedCondition:
    """A composite condition with its terms already normalized."""
    match_type: str
    terms: Tuple[str, ...]
    join_operator: str
    mandatory: bool
    
    @classmethod
    def from_condition(cls, condition: Condition) -> "NormalizedCondition":
        return cls(
            match_type=condition.match_type,
            terms=normalize_terms(condition.terms),
            join_operator=str(condition.join_operator).upper(),
            mandatory=condition.mandatory,
        )


def matches(normalized_text: str, match_type: str, normalized_terms: Sequence[str]) -> bool:
    """Test one condition against already-normalized text.
    
    Args:
        normalized_text: Output of ``normalize_text``
        match_type: One of the ``MatchType`` values
        normalized_terms: Terms passed through ``normalize_terms``
    
    Returns:
        True if the condition holds. An empty term list or an unknown
        match type never matches.
    """
    if not normalized_terms:
        return False
    
    if match_type == MatchType.EXACT.value:
        return any(normalized_text == t for t in normalized_terms)
    if match_type == MatchType.STARTS_WITH.value:
        return any(normalized_text.startswith(t) for t in normalized_terms)
    if match_type == MatchType.CONTAINS.value:
        return any(t in normalized_text for t in normalized_terms)
    if match_type == MatchType.CONTAINS_ALL.value:
        return all(t in normalized_text for t in normalized_terms)
    if match_type == MatchType.NOT_CONTAINS.value:
        return not any(t in normalized_text for t in normalized_terms)
    return False


def is_excluded(normalized_text: str, normalized_exclusions: Sequence[str]) -> bool:
    """True if any exclusion term occurs in the text."""
    return any(t in normalized_text for t in normalized_exclusions)


def matches_rule_form(
    normalized_text: str,
    match_type: str,
    normalized_terms: Sequence[str],
    normalized_exclusions: Sequence[str] = (),
) -> bool:
    """Evaluate the legacy form: exclusion first, then the primary test."""
    if normalized_exclusions and is_excluded(normalized_text, normalized_exclusions):
        return False
    return matches(normalized_text, match_type, normalized_terms)


def evaluate(
    normalized_text: str,
    conditions: Sequence[Union[Condition, NormalizedCondition]],
) -> CompositeOutcome:
    """Evaluate an ordered composite condition chain.
    
    Condition 0 seeds the running result; every later condition is combined
    with it using the PREVIOUS condition's join operator. A mandatory
    condition that fails returns ``(False, 0)`` immediately, discarding any
    bonus gathered so far. Each optional condition that matches adds
    ``OPTIONAL_MATCH_BONUS`` whatever the running result is.
    
    Args:
        normalized_text: Output of ``normalize_text``
        conditions: Conditions in evaluation order
    
    Returns:
        CompositeOutcome(valid, bonus); an empty chain is never valid
    """
    if not conditions:
        return CompositeOutcome(False, 0)
    
    result = False
    bonus = 0
    pending_operator = JoinOperator.AND.value
    
    for index, condition in enumerate(conditions):
        if isinstance(condition, Condition):
            condition = NormalizedCondition.from_condition(condition)
        
        match = matches(normalized_text, condition.match_type, condition.terms)
        
        if condition.mandatory and not match:
            return CompositeOutcome(False, 0)
        
        if index == 0:
            result = match
        elif pending_operator == JoinOperator.OR.value:
            result = result or match
        else:
            result = result and match
        
        if not condition.mandatory and match:
            bonus += OPTIONAL_MATCH_BONUS
        
        pending_operator = condition.join_operator
    
    return CompositeOutcome(result, bonus)


def rule_to_conditions(rule: Rule) -> List[Condition]:
    """Convert a rule's legacy form into an equivalent composite chain.
    
    Produces a mandatory inclusion condition (skipped when the rule has no
    terms) followed, when exclusion terms exist, by a mandatory
    ``notContains`` condition holding them. Both join with AND.
    """
    conditions: List[Condition] = []
    
    if rule.terms:
        conditions.append(Condition(
            match_type=rule.match_type,
            terms=list(rule.terms),
            join_operator=JoinOperator.AND.value,
            mandatory=True,
        ))
    
    if rule.exclusion_terms:
        conditions.append(Condition(
            match_type=MatchType.NOT_CONTAINS.value,
            terms=list(rule.exclusion_terms),
            join_operator=JoinOperator.AND.value,
            mandatory=True,
        ))
    
    return conditions


def conditions_to_rule_form(conditions: Sequence[Condition]) -> LegacyRuleForm:
    """Convert a composite chain back to the legacy shorthand.
    
    Only chains produced by ``rule_to_conditions`` (or shaped like them) can
    be expressed: at most two conditions, all mandatory, joined with AND,
    the second one being ``notContains``.
    
    Raises:
        ValidationError: If the chain cannot be expressed in the legacy form
    """
    if not conditions:
        return LegacyRuleForm(MatchType.CONTAINS.value, [], [])
    
    if len(conditions) > 2:
        raise ValidationError(
            f"Legacy form holds at most 2 conditions, got {len(conditions)}"
        )
    
    for condition in conditions:
        if not condition.mandatory:
            raise ValidationError("Legacy form cannot express optional conditions")
    
    if len(conditions) == 2 and str(conditions[0].join_operator).upper() != JoinOperator.AND.value:
        raise ValidationError("Legacy form only combines conditions with AND")
    
    first = conditions[0]
    
    if len(conditions) == 1:
        return LegacyRuleForm(first.match_type, list(first.terms), [])
    
    second = conditions[1]
    if second.match_type != MatchType.NOT_CONTAINS.value:
        raise ValidationError(
            "Second condition must be notContains to become exclusion terms, "
            f"got {second.match_type}"
        )
    
    return LegacyRuleForm(first.match_type, list(first.terms), list(second.terms))
