# bizdev/errors.py
"""
Error taxonomy shared by the stores and the remote sources.

- NotFoundError: direct get() on a key that is not stored (caller bug)
- RemoteFetchError: network / HTTP / parse failure talking to a remote source
- DeserializationError: stored text that does not decode into the expected records
"""


class StoreError(Exception):
    pass


class NotFoundError(StoreError, KeyError):
    def __init__(self, key: str):
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"key {self.key!r} is not stored"


class RemoteFetchError(StoreError):
    pass


class DeserializationError(StoreError, ValueError):
    pass
