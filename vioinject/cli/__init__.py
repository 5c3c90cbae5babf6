"""CLI package for vioinject."""

from vioinject.cli.app import app, main


__all__ = ["app", "main"]
