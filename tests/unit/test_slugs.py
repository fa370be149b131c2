"""
Unit tests for slug generation
"""
import pytest

from src.commerce.slugs import slugify


class TestSlugify:
    """Tests for slugify"""

    @pytest.mark.parametrize("name, expected", [
        ("Monstera Deliciosa!", "monstera-deliciosa"),
        ("Ceramic Plant Pot - White", "ceramic-plant-pot-white"),
        ("  Fiddle--Leaf   Fig  ", "fiddle-leaf-fig"),
        ("ZZ Plant (Large) 2024", "zz-plant-large-2024"),
        ("Café Crème", "caf-cr-me"),
    ])
    def test_examples(self, name, expected):
        assert slugify(name) == expected

    def test_only_symbols_gives_empty_slug(self):
        assert slugify("!!! ???") == ""
