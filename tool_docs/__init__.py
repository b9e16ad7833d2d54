"""tool-docs: Markdown documentation pipeline for a CLI tool catalog."""

__version__ = "0.1.0"
