"""Review git working-tree changes with a human and an AI agent at the same time."""

__version__ = "1.0.0"
