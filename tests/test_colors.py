#!/usr/bin/env python3
"""
Unit tests for series color assignment
"""
import pytest

from src.core.colors import DEFAULT_PALETTE, SeriesColorAssigner, validate_palette


class TestSeriesColorAssigner:
    """Test palette slot assignment per series"""

    def test_first_come_first_served(self):
        """Test colors follow first appearance order"""
        colors = SeriesColorAssigner()
        assert colors.colors_for(["B", "A"]) == [("B", "red"), ("A", "blue")]

    def test_stable_across_deselect_and_reselect(self):
        """Test a series keeps its color after being deselected and reselected"""
        colors = SeriesColorAssigner()
        colors.observe(["A", "B"])
        colors.observe(["B"])
        colors.observe(["C"])
        colors.observe(["A", "C"])
        assert colors.color("A") == "red"
        assert colors.color("B") == "blue"
        assert colors.color("C") == "gray"

    def test_wraps_modulo_palette(self):
        """Test assignment wraps around a short palette"""
        colors = SeriesColorAssigner(["red", "blue"])
        colors.observe(["s1", "s2", "s3"])
        assert colors.slot("s3") == 0
        assert colors.color("s3") == "red"

    def test_unknown_series(self):
        """Test a series never seen has no color"""
        colors = SeriesColorAssigner()
        assert colors.color("nope") is None
        assert colors.as_hex("nope") is None

    def test_hex(self):
        """Test colors can be read back as hex codes"""
        colors = SeriesColorAssigner()
        colors.observe(["A"])
        assert colors.as_hex("A") == "#ff0000"


class TestValidatePalette:
    """Test palette validation"""

    def test_default_palette_is_valid(self):
        """Test the built-in palette passes validation"""
        assert validate_palette(DEFAULT_PALETTE) == DEFAULT_PALETTE
        assert len(DEFAULT_PALETTE) == 8

    def test_empty(self):
        """Test an empty palette is rejected"""
        with pytest.raises(ValueError):
            validate_palette([])

    def test_invalid_color(self):
        """Test an unknown color name is rejected"""
        with pytest.raises(ValueError, match="not-a-color"):
            SeriesColorAssigner(["red", "not-a-color"])
