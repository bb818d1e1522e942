"""Keep a markdown task board in sync with GitHub issues."""

__version__ = "0.4.0"
