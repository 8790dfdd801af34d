"""RepoGate: repository access control and branch protection."""

__version__ = "0.1.0"
