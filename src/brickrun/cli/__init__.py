"""Command line interface for running pipelines."""
