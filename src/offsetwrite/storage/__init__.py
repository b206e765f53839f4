"""
Storage layer: backend protocols, HTTP clients, request encoding and errors.

Import from the submodules directly.
"""
