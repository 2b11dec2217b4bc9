"""Loaders for configuration and workspace snapshots."""
