"""
offsetwrite - arbitrary-offset writes over compose-only object stores.

The store can replace a whole object or compose a new one from uploaded
parts and byte ranges of stored objects. OffsetWriter turns a write at any
offset into one such compose.
"""
__version__ = "0.1.0"
