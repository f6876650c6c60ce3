"""Unit tests for text normalization."""
import pytest

from catalog_pipeline.services.classification import normalize_text, normalize_terms


class TestNormalizeText:
    """Test normalize_text canonicalization."""
    
    def test_uppercases_and_strips_accents(self):
        """Accented lower-case text becomes plain upper case."""
        assert normalize_text("Calça Jeans") == "CALCA JEANS"
    
    def test_case_and_accent_insensitive(self):
        """Different spellings of the same words normalize equally."""
        assert normalize_text("Calça Jeans") == normalize_text("CALCA JEANS")
        assert normalize_text("biquíni") == normalize_text("BIQUINI")
    
    def test_punctuation_becomes_space(self):
        """Non-alphanumeric characters are replaced and whitespace collapsed."""
        assert normalize_text("Camiseta-Polo (azul)/P") == "CAMISETA POLO AZUL P"
    
    def test_collapses_and_trims_whitespace(self):
        """Runs of whitespace collapse and ends are trimmed."""
        assert normalize_text("  vestido \t  longo\n") == "VESTIDO LONGO"
    
    def test_keeps_digits(self):
        """Digits survive normalization."""
        assert normalize_text("Tênis nº 42") == "TENIS N 42"
    
    @pytest.mark.parametrize("value", [None, "", "   ", "---"])
    def test_empty_inputs(self, value):
        """Empty or punctuation-only input normalizes to an empty string."""
        assert normalize_text(value) == ""
    
    @pytest.mark.parametrize("value", [
        "Biquíni Azul Marinho Tamanho M",
        "Saída de Praia - Crochê",
        "çãõ ÁÉÍ 123 !!",
    ])
    def test_idempotent(self, value):
        """Normalizing twice is the same as normalizing once."""
        once = normalize_text(value)
        assert normalize_text(once) == once


class TestNormalizeTerms:
    """Test term list normalization."""
    
    def test_normalizes_each_term(self):
        """Every term is normalized."""
        assert normalize_terms(["azul", "Verde-Água"]) == ("AZUL", "VERDE AGUA")
    
    def test_drops_terms_that_normalize_to_nothing(self):
        """Blank terms would match everything, so they are removed."""
        assert normalize_terms(["", "  ", "-", None, "top"]) == ("TOP",)
