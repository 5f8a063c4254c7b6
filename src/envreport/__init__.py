"""Azure DevOps environment reporter."""

__version__ = "0.1.0"
