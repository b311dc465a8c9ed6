"""
dtomap: copy values between typed records and key/value maps.

Coerces single values between a fixed set of semantic kinds, copies
records onto records and maps (singly or in batches) inside a scoped
formatting context, and normalizes database-style key names.
"""

__version__ = "0.1.0"
