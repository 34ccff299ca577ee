from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class UserPrincipal:
    """An end user authenticated through the federated identity provider."""
    user_id: int
    external_id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class AdminPrincipal:
    """A canteen operator; may only act on its own canteen's orders."""
    canteen_id: int


Principal = Union[UserPrincipal, AdminPrincipal]
