"""Bundled reference catalogs and default settings."""
