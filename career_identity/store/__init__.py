from .identity_store import IdentityStore, StoreError, get_store

__all__ = ["IdentityStore", "StoreError", "get_store"]
