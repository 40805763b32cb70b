from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, Index, text
from sqlalchemy.orm import relationship
from teamgraph.db.session import Base
from teamgraph.models.team import TeamRole
from teamgraph.utils.time import ensure_utc, utcnow
import enum


class InvitationStatus(enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REVOKED = "REVOKED"
    EXPIRED = "EXPIRED"


class TeamInvitation(Base):
    __tablename__ = "team_invitations"

    id = Column(Integer, primary_key=True, index=True)
    # NULL once the issuing team has been dissolved; the row itself is kept
    team_id = Column(
        Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True, index=True
    )
    invited_by_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    email = Column(String(256), nullable=False, index=True)
    role = Column(Enum(TeamRole), nullable=False, default=TeamRole.MEMBER)
    token = Column(String(64), nullable=False, unique=True, index=True)
    status = Column(
        Enum(InvitationStatus), nullable=False, default=InvitationStatus.PENDING
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    # Filled in by the single terminal transition
    accepted_by_id = Column(String(64), ForeignKey("users.id"), nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)

    # At most one pending invitation per (team, email)
    __table_args__ = (
        Index(
            "uq_team_invitations_pending_email",
            "team_id",
            "email",
            unique=True,
            sqlite_where=text("status = 'PENDING'"),
            postgresql_where=text("status = 'PENDING'"),
        ),
    )

    # Relationships
    team = relationship("Team")
    inviter = relationship("User", foreign_keys=[invited_by_id])

    def is_expired(self, now=None) -> bool:
        """Check if invitation has expired."""
        return (now or utcnow()) >= ensure_utc(self.expires_at)

    def is_valid(self, now=None) -> bool:
        """Check if invitation is valid for acceptance."""
        return self.status == InvitationStatus.PENDING and not self.is_expired(now)
