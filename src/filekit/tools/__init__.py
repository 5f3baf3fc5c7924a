"""
Engine components for filekit.

This module contains the tree walker, path filter, permission validator,
transfer engine and search engine.
"""
