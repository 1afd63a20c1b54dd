"""Serializers that turn a node tree into RBI or RBS text."""
