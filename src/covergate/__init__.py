"""covergate: coverage gatekeeper for Go cover profiles."""

__version__ = "0.1.0"
