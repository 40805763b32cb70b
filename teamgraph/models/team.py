from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Enum,
    ForeignKey,
    Boolean,
    CheckConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from teamgraph.db.session import Base
import enum


class TeamRole(enum.Enum):
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class BillingProvider(enum.Enum):
    SELF = "SELF"
    TEAM_OWNER = "TEAM_OWNER"


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(256), nullable=False)
    owner_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    # NULL means the team is a root of the hierarchy
    parent_team_id = Column(Integer, ForeignKey("teams.id"), nullable=True, index=True)
    shared_balance_cents = Column(Integer, nullable=False, default=0)
    is_unlimited = Column(Boolean, nullable=False, default=False)
    external_subscription_ref = Column(String(128), nullable=True)

    # Team-level defaults inherited by members of this team and its descendants
    default_rate_limit_rpm = Column(Integer, nullable=True)
    default_monthly_limit_cents = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    owner = relationship("User", foreign_keys=[owner_id])
    parent = relationship("Team", remote_side=[id], foreign_keys=[parent_team_id])
    members = relationship("TeamMember", back_populates="team", cascade="all, delete-orphan")

    def has_active_subscription(self) -> bool:
        return bool(self.is_unlimited or self.external_subscription_ref)

    def holds_billing_state(self) -> bool:
        """A subscription or any non-zero shared balance, credit or debt."""
        return self.has_active_subscription() or bool(self.shared_balance_cents)


class TeamMember(Base):
    __tablename__ = "team_members"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    # A user holds at most one membership
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, unique=True)
    role = Column(Enum(TeamRole), nullable=False, default=TeamRole.MEMBER)

    monthly_limit_cents = Column(Integer, nullable=True)
    rate_limit_rpm = Column(Integer, nullable=True)
    current_month_spend_cents = Column(Integer, nullable=False, default=0)
    budget_reset_at = Column(DateTime(timezone=True), nullable=True)

    billing_provider = Column(
        Enum(BillingProvider), nullable=False, default=BillingProvider.TEAM_OWNER
    )
    is_unlimited = Column(Boolean, nullable=False, default=False)
    external_subscription_ref = Column(String(128), nullable=True)

    joined_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("current_month_spend_cents >= 0", name="ck_member_spend_non_negative"),
        CheckConstraint(
            "monthly_limit_cents IS NULL OR monthly_limit_cents >= 0",
            name="ck_member_limit_non_negative",
        ),
        CheckConstraint(
            "rate_limit_rpm IS NULL OR rate_limit_rpm >= 0",
            name="ck_member_rate_limit_non_negative",
        ),
    )

    # Relationships
    team = relationship("Team", back_populates="members")
    user = relationship("User")
