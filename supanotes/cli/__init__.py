"""Command line interface for supanotes."""
