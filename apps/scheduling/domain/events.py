"""
Scheduling Domain Events

Published after the transaction that produced them commits.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class HoldCreated(DomainEvent):
    """
    Event: A checkout session reserved a window

    Triggers:
    - Nothing required; expiry is lazy
    """
    session_id: str
    unit_id: int
    delivery_crew_id: int
    pickup_crew_id: int
    expires_at: datetime
    superseded_hold_id: Optional[int] = None


@dataclass(kw_only=True)
class HoldReleased(DomainEvent):
    """
    Event: A hold was discarded (payment failed, abandoned or superseded)
    """
    session_id: str
    reason: str = ""
