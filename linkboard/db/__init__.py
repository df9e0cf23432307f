from .links import LinkStore, LinkStoreError

__all__ = ["LinkStore", "LinkStoreError"]
