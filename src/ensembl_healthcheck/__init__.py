"""Ensembl healthcheck: relational and semantic consistency checks for release databases."""

__version__ = "0.1.0"
