"""Item store: schema, connection management and the ItemStore itself."""

from sharegate.core.store.database import ShareDB
from sharegate.core.store.items import ItemStore
from sharegate.core.store.schema import access_logs_table, items_table, metadata

__all__ = [
    "ItemStore",
    "ShareDB",
    "access_logs_table",
    "items_table",
    "metadata",
]
