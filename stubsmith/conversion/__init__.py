"""Conversion between stub dialects."""
