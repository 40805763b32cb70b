from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from teamgraph.db.session import Base


class User(Base):
    """Local mirror of identities seen from the identity provider."""

    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    full_name = Column(String(256), nullable=True)
    email = Column(String(256), unique=True, index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
