"""Unit tests for RuleEngine.

Tests cover:
- Rule matching and field assignment
- Specificity scoring and tie-breaks
- List attribute extraction
- Confidence scores
- Composite rules and search fields
- Edge cases
"""
import pytest

from catalog_pipeline.models import ClassificationResult, CustomAttribute, ProductInput, Rule
from catalog_pipeline.services.classification import (
    RuleEngine,
    classify,
    compute_confidence,
    specificity_score,
)


class TestRuleEngineScenarios:
    """End-to-end classification scenarios."""
    
    def test_biquini_category(self, biquini_rule):
        """A contains rule assigns its category to an accented name."""
        result = classify("Biquíni Azul Marinho Tamanho M", [biquini_rule])
        
        assert result.category == "Biquíni"
        assert result.confidence > 0
        assert "Biquini" in result.applied_rule_names
    
    def test_exclusion_precedence(self, make_rule):
        """AZUL MARINHO excludes a rule looking for AZUL."""
        rule = make_rule(
            name="Azul",
            terms=["AZUL"],
            exclusion_terms=["AZUL MARINHO"],
            target_field="cor_principal",
            target_value="Azul",
        )
        
        result = classify("CAMISA AZUL MARINHO", [rule])
        
        assert result.extra_attributes == {}
        assert result.applied_rule_names == ()
        assert result.confidence == 0
    
    def test_no_match_yields_empty_result(self, biquini_rule):
        """Unmatched names get an empty result."""
        result = classify("Vestido Longo", [biquini_rule])
        
        assert result == ClassificationResult()
        assert result.confidence == 0
    
    def test_deterministic(self, biquini_rule, color_attribute, size_attribute):
        """Classifying the same name twice gives identical results."""
        engine = RuleEngine([biquini_rule], [color_attribute, size_attribute])
        
        first = engine.classify("Biquíni Azul Marinho Tamanho M")
        second = engine.classify("Biquíni Azul Marinho Tamanho M")
        
        assert first == second
        assert first is not second


class TestRuleSelection:
    """Test candidate scoring and conflict resolution."""
    
    def test_tie_goes_to_earliest_order(self, make_rule):
        """Equal scores: the rule earlier in ``order`` wins."""
        first = make_rule(name="First", terms=["CAMISETA"], target_value="Camiseta", order=1)
        second = make_rule(name="Second", terms=["CAMISETA"], target_value="Blusa", order=2)
        
        result = classify("Camiseta Basica", [second, first])
        
        assert result.category == "Camiseta"
        assert result.applied_rule_names == ("First",)
    
    def test_higher_score_wins_regardless_of_order(self, make_rule):
        """Specificity beats rule order."""
        generic = make_rule(name="Generic", terms=["SAIA"], target_value="Saia", order=1)
        specific = make_rule(
            name="Specific",
            match_type="exact",
            terms=["SAIA MIDI"],
            target_value="Saia Midi",
            base_points=0,
            order=2,
        )
        
        result = classify("Saia Midi", [generic, specific])
        
        assert result.category == "Saia Midi"
    
    def test_inactive_rules_ignored(self, make_rule):
        """Inactive rules never apply."""
        rule = make_rule(terms=["SAIA"], active=False)
        
        assert classify("Saia", [rule]).category is None
    
    def test_named_fields_and_extras(self, make_rule):
        """Each target field fills its result slot."""
        rules = [
            make_rule(name="Cat", terms=["BIQUINI"], target_field="categoria", target_value="Biquíni"),
            make_rule(name="Sub", terms=["CORTINHA"], target_field="subcategoria", target_value="Cortininha"),
            make_rule(name="Gen", terms=["BIQUINI"], target_field="genero", target_value="Feminino"),
            make_rule(name="Age", terms=["INFANTIL"], target_field="faixa_etaria", target_value="Infantil"),
            make_rule(name="Brand", terms=["SOLAR"], target_field="marca", target_value="Solar"),
            make_rule(name="Style", terms=["PRAIA"], target_field="estilo", target_value="Praia"),
            make_rule(name="Fabric", terms=["LYCRA"], target_field="tecido", target_value="Lycra"),
        ]
        
        result = classify("Biquini Cortinha Infantil Solar Praia Lycra", rules)
        
        assert result.category == "Biquíni"
        assert result.subcategory == "Cortininha"
        assert result.gender == "Feminino"
        assert result.age_range == "Infantil"
        assert result.brand == "Solar"
        assert result.style == "Praia"
        assert result.extra_attributes == {"tecido": "Lycra"}
        assert len(result.applied_rule_names) == 7
    
    def test_category_sets_linked_id_and_auto_gender(self, make_rule):
        """A category rule carries its id and gender."""
        rule = make_rule(terms=["SUTIA"], target_value="Sutiã", linked_category_id=7,
                         auto_gender_value="Feminino")
        
        result = classify("Sutiã Renda", [rule])
        
        assert result.category_id == 7
        assert result.gender == "Feminino"
    
    def test_explicit_gender_rule_beats_auto_gender(self, make_rule):
        """A gender rule overrides the automatic one."""
        category = make_rule(name="Cat", terms=["CUECA"], target_value="Cueca",
                             auto_gender_value="Masculino")
        gender = make_rule(name="Gen", terms=["INFANTIL"], target_field="genero",
                           target_value="Unissex")
        
        result = classify("Cueca Infantil", [category, gender])
        
        assert result.gender == "Unissex"


class TestSpecificityScore:
    """Test type bonuses."""
    
    @pytest.mark.parametrize("match_type,terms,expected", [
        ("exact", ["A"], 1000),
        ("startsWith", ["A"], 800),
        ("containsAll", ["A", "B"], 700),
        ("contains", ["A"], 100),
        ("notContains", ["A"], 50),
    ])
    def test_type_bonus(self, make_rule, match_type, terms, expected):
        """Each match type adds its bonus to the base score."""
        rule = make_rule(match_type=match_type, terms=terms, base_points=100)
        
        assert specificity_score(rule) == expected
    
    def test_unknown_type_has_no_bonus(self, make_rule):
        """Unknown match types score base points only."""
        assert specificity_score(make_rule(match_type="fuzzy", base_points=5)) == 5


class TestAttributeExtraction:
    """Test list attribute extraction."""
    
    def test_color_and_size_buckets(self, biquini_rule, color_attribute, size_attribute):
        """Color and size attributes fill their fields."""
        result = classify(
            "Biquíni Azul Marinho Tamanho M",
            [biquini_rule],
            [color_attribute, size_attribute],
        )
        
        assert result.color == "Azul Marinho"
        assert result.size == "M"
    
    def test_whole_word_only(self, size_attribute):
        """``P`` must not match inside ``PRAIA``."""
        result = classify("Saida Praia", [], [size_attribute])
        
        assert result.size is None
    
    def test_unknown_attribute_goes_to_extras(self):
        """Other list attributes land in extra_attributes."""
        attribute = CustomAttribute(name="Estampa", values=["Floral", "Listrado"])
        
        result = classify("Vestido Floral", [], [attribute])
        
        assert result.extra_attributes == {"estampa": "Floral"}
    
    def test_does_not_overwrite(self):
        """A second attribute for the same bucket never replaces the first."""
        first = CustomAttribute(name="Cores", values=["Azul"])
        second = CustomAttribute(name="Cor", values=["Camisa"])
        
        result = classify("Camisa Azul", [], [first, second])
        
        assert result.color == "Azul"
        assert result.confidence == compute_confidence(1, 0)
    
    def test_inactive_and_rules_kind_ignored(self):
        """Inactive and non-list attributes are skipped."""
        attributes = [
            CustomAttribute(name="Cores", values=["Azul"], active=False),
            CustomAttribute(name="Material", kind="rules", values=["Algodao"]),
        ]
        
        result = classify("Camisa Azul Algodao", [], attributes)
        
        assert result.color is None
        assert result.material is None
    
    def test_extraction_searches_variations(self, color_attribute):
        """Attribute values are also found in variations."""
        engine = RuleEngine([], [color_attribute])
        
        result = engine.classify_product(ProductInput(name="Camisa", variation_1="Preto"))
        
        assert result.color == "Preto"


class TestConfidence:
    """Test confidence computation."""
    
    def test_bounds(self):
        """Confidence stays within 0 and 100."""
        assert compute_confidence(0, 0) == 0
        assert compute_confidence(10, 1000) == 100
        assert compute_confidence(25, 10000) == 100
        assert compute_confidence(0, -500) == 0
    
    def test_formula(self):
        """Confidence combines filled fields and top score."""
        assert compute_confidence(1, 100) == 10
        assert compute_confidence(5, 500) == 50
    
    def test_monotonic(self):
        """More filled fields never lower confidence."""
        for fields in range(12):
            for score in range(0, 1200, 50):
                value = compute_confidence(fields, score)
                assert 0 <= value <= 100
                assert compute_confidence(fields + 1, score) >= value
                assert compute_confidence(fields, score + 50) >= value
    
    def test_scenario_confidence(self, biquini_rule, color_attribute, size_attribute):
        """One rule (100 points) plus two extracted attributes."""
        result = classify(
            "Biquíni Azul Marinho Tamanho M",
            [biquini_rule],
            [color_attribute, size_attribute],
        )
        
        assert result.confidence == compute_confidence(3, 100)


class TestCompositeRules:
    """Test rules carrying composite conditions."""
    
    def test_composite_replaces_legacy_terms(self, make_rule):
        """Composite conditions take over from legacy terms."""
        rule = make_rule(
            terms=["NEVER"],
            conditions=[
                {"tipo": "contains", "termos": ["BIQUINI"], "obrigatorio": True},
                {"tipo": "contains", "termos": ["PRAIA"], "obrigatorio": False},
            ],
        )
        
        result = classify("Biquini Praia", [rule])
        
        assert result.category == "Value"
        assert result.confidence == compute_confidence(1, 125)
    
    def test_composite_mandatory_failure(self, make_rule):
        """A failed mandatory condition blocks the rule."""
        rule = make_rule(conditions=[
            {"matchType": "contains", "terms": ["VESTIDO"], "mandatory": True},
            {"matchType": "contains", "terms": ["AZUL"], "mandatory": False},
        ])
        
        assert classify("Camisa Azul", [rule]).category is None
    
    def test_malformed_conditions_fall_back_to_legacy(self, make_rule):
        """Unusable conditions fall back to legacy terms."""
        rule = make_rule(terms=["SAIA"], conditions=[{"foo": "bar"}])
        
        assert rule.conditions is None
        assert classify("Saia Jeans", [rule]).category == "Value"


class TestSearchFields:
    """Test which product fields a rule reads."""
    
    def test_rule_reads_selected_fields(self, make_rule):
        """Rules only search the fields they name."""
        rule = make_rule(terms=["ESTAMPADO"], search_fields=["variacao_1"],
                         target_field="estampa", target_value="Estampado")
        engine = RuleEngine([rule])
        
        hit = engine.classify_product({"nome": "Camisa", "variacao_1": "Estampado"})
        miss = engine.classify_product({"nome": "Camisa Estampado"})
        
        assert hit.extra_attributes == {"estampa": "Estampado"}
        assert miss.extra_attributes == {}
    
    def test_code_field(self, make_rule):
        """Rules can match on the product code."""
        rule = make_rule(terms=["BQ"], match_type="startsWith", search_fields=["code"])
        
        result = RuleEngine([rule]).classify_product(ProductInput(name="Peça", code="BQ-001"))
        
        assert result.category == "Value"


class TestClassifyMany:
    """Test bulk classification."""
    
    def test_preserves_order_and_accepts_mixed_input(self, biquini_rule):
        """classify_many keeps order across input shapes."""
        engine = RuleEngine([biquini_rule])
        
        items = engine.classify_many([
            "Biquini Lacinho",
            {"name": "Vestido"},
            ProductInput(name="Biquíni Top", code=123),
        ])
        
        assert [i.product.name for i in items] == ["Biquini Lacinho", "Vestido", "Biquíni Top"]
        assert [i.result.category for i in items] == ["Biquíni", None, "Biquíni"]
        assert items[2].product.code == "123"
    
    def test_rule_from_backend_row(self):
        """Rules validate straight from Portuguese backend rows."""
        rule = Rule.model_validate({
            "nome": "Maiô",
            "tipo": "contains",
            "termos": ["MAIO"],
            "termos_exclusao": None,
            "campo_destino": "categoria",
            "valor_destino": "Maiô",
            "pontuacao": 50,
            "ativo": True,
            "ordem": 3,
            "condicoes": [],
        })
        
        assert classify("Maiô Preto", [rule]).category == "Maiô"
