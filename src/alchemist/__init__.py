"""Data Alchemist: validation and rule-conflict analysis for allocation workspaces."""

__version__ = "0.1.0"
