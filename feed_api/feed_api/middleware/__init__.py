"""HTTP middleware for the package feed host."""
