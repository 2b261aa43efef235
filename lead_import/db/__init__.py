from .store import InMemoryLeadStore, LeadStore, PostgresLeadStore, StorageError

__all__ = ["InMemoryLeadStore", "LeadStore", "PostgresLeadStore", "StorageError"]
