from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from teamgraph.db.session import Base
from teamgraph.utils.time import utcnow


class UsageEvent(Base):
    """
    One row per processed usage event. The primary key is the dedup key, so
    a replayed event fails to insert and is never counted twice.
    """

    __tablename__ = "usage_events"

    event_id = Column(String(128), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("team_members.id", ondelete="SET NULL"), nullable=True)
    # Set only for owner-level usage charged to the shared balance
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True)
    cost_cents = Column(Integer, nullable=False)
    recorded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
