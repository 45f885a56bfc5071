"""Publication stores.

Modules
-------
protocol    PublicationStore / PublicationTransaction contracts
sql         SqlPublicationStore (SQLAlchemy; SKIP LOCKED on PostgreSQL)
memory      MemoryPublicationStore (in-process row locks, staged writes)
"""

from lesson_spine.store.memory import MemoryPublicationStore, MemoryPublicationTransaction
from lesson_spine.store.protocol import PublicationStore, PublicationTransaction
from lesson_spine.store.sql import SqlPublicationStore, SqlPublicationTransaction

__all__ = [
    "MemoryPublicationStore",
    "MemoryPublicationTransaction",
    "PublicationStore",
    "PublicationTransaction",
    "SqlPublicationStore",
    "SqlPublicationTransaction",
]
