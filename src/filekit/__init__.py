"""
filekit - Core Package

The engine of a command-line file-management tool: ordered directory walking,
compound filtering, safe copy/move transfers and content search.
"""

__version__ = "0.1.0"
__author__ = "filekit Team"
