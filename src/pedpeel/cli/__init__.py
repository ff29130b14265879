"""Command line interface for pedpeel."""
