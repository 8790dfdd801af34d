"""Infrastructure layer for RepoGate."""
