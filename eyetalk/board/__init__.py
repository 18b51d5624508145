"""Phrase book, target layout, registry and hit testing."""
