"""Command-line tool for managing Sucuri WAF whitelists, blacklists and settings."""

__version__ = "1.0.0"
