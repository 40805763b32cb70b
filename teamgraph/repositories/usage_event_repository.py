"""Repository for processed usage events."""

from typing import Optional
from sqlalchemy import insert
from sqlalchemy.orm import Session

from teamgraph.models.usage_event import UsageEvent
from teamgraph.repositories.base_repository import BaseRepository
from teamgraph.utils.time import utcnow


class UsageEventRepository(BaseRepository[UsageEvent]):
    """Repository for UsageEvent database operations."""

    def __init__(self, db: Session):
        super().__init__(UsageEvent, db)

    def mark_processed(
        self,
        event_id: str,
        user_id: str,
        cost_cents: int,
        member_id: Optional[int] = None,
        team_id: Optional[int] = None,
    ) -> None:
        """
        Insert the dedup row for an event.

        A plain INSERT rather than ``session.add`` so that a replay always
        reaches the database and fails on the primary key.

        Raises:
            IntegrityError: If the event was already processed
        """
        self.db.execute(
            insert(UsageEvent).values(
                event_id=event_id,
                user_id=user_id,
                member_id=member_id,
                team_id=team_id,
                cost_cents=cost_cents,
                recorded_at=utcnow(),
            )
        )
