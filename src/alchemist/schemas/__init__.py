"""Data contracts and cell coercion."""
