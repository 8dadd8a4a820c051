"""Request context for ownership enforcement."""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class RequestContext:
    """Identity of the caller.

    Used to enforce that users only control generation of their own trips.
    """

    user_id: UUID
