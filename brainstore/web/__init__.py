"""Web snippet lookup."""
