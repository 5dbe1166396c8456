from dataclasses import dataclass, field
from datetime import datetime
from typing import List


# PUBLIC_INTERFACE
@dataclass
class User:
    """
    A registered account. Only the password hash is ever kept.
    """
    id: int
    username: str
    password_hash: str


# PUBLIC_INTERFACE
@dataclass
class Note:
    """
    A free-text note owned by a single user.
    """
    id: int
    owner_id: int
    content: str
    created_at: datetime
    updated_at: datetime
    tags: List[str] = field(default_factory=list)
    favorite: bool = False


# PUBLIC_INTERFACE
@dataclass
class Bookmark:
    """
    A saved URL owned by a single user. The title falls back to the URL itself.
    """
    id: int
    owner_id: int
    url: str
    title: str
    created_at: datetime
    updated_at: datetime
    description: str = ""
    tags: List[str] = field(default_factory=list)
    favorite: bool = False
