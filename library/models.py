"""
library/models.py -- Domain dataclasses for user book collections.

Pure data containers. All persistence lives in library/store.py; ownership
checks live in the route layer via auth.permissions.check_resource_owner().
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Collection:
    """A named shelf of books belonging to one user.

    owner_id is the id of the user who created it and is the field
    check_resource_owner() compares against the caller.

    id is None before the record is written to the database.
    """

    owner_id: int
    title: str
    is_private: bool = False
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
