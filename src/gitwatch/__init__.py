"""File watcher with git status correlation."""

__version__ = "0.1.0"
