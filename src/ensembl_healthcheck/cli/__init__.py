"""Command-line interface for ensembl-healthcheck."""
