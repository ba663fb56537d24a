"""Command-line interface for CIM Tools."""
