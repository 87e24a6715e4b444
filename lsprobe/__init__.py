"""lsprobe: locate a running Antigravity/Windsurf language server and its CSRF token."""

__version__ = "0.1.0"
