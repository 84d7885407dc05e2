"""Release tooling for dev container image definitions."""

__version__ = "0.1.0"
