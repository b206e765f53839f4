# Fake implementations for testing

from .fake_kodo import HOSTS, FakeKodoBackend

__all__ = ["FakeKodoBackend", "HOSTS"]
