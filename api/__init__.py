"""HTTP surface for sitegate."""
