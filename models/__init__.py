from models.ids import new_id, utc_now
from models.item import Item, ItemStatus, Priority, dedup_key, parse_deadline
from models.subject import Subject
from models.university import University
from models.store import FilterField, Filters, Store, UIState, ViewName

__all__ = [
    "new_id",
    "utc_now",
    "Item",
    "ItemStatus",
    "Priority",
    "dedup_key",
    "parse_deadline",
    "Subject",
    "University",
    "FilterField",
    "Filters",
    "Store",
    "UIState",
    "ViewName",
]
