"""Utility functions for RuneMate publishing."""

from .slug import manifest_file_name, manifest_slug

__all__ = [
    'manifest_slug',
    'manifest_file_name',
]
