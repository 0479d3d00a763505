"""Evidence: a two-axis archetype quiz."""

__version__ = "1.0.0"
