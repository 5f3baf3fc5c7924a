"""
Data models for filekit.

This module contains all the value objects passed between the walker, filter,
permission validator, transfer engine and search engine.
"""

from .entry import Entry
from .filter_spec import DateRange, FilterSpec, SearchCriteria, SizeRange
from .transfer import OverwritePolicy, TransferMode, TransferRequest, TransferReport

__all__ = [
    'Entry',
    'FilterSpec',
    'SearchCriteria',
    'SizeRange',
    'DateRange',
    'TransferMode',
    'OverwritePolicy',
    'TransferRequest',
    'TransferReport',
]
