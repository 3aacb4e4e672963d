"""HTTP routers for the package feed."""
