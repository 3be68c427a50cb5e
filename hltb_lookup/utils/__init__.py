"""
Utility functions and helpers.

Submodules are imported directly (`from hltb_lookup.utils.names import sanitize`); pandas is
only pulled in by `csv_io`.
"""
