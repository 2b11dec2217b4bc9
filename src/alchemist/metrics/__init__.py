"""Data-quality summaries of validation findings."""
