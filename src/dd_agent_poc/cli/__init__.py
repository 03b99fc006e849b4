"""Command line interface for dd-agent-poc."""
