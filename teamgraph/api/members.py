from typing import Dict, Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from teamgraph.api.deps import get_current_identity
from teamgraph.db.session import get_db
from teamgraph.schemas.member import PropertyValueOut
from teamgraph.schemas.user import Identity
from teamgraph.services.property_resolver import PropertyResolver

router = APIRouter()


@router.get("/{member_id}/properties", response_model=Dict[str, Any])
def get_member_properties(
    member_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Resolve every policy property for a member."""
    return PropertyResolver.resolve_all(db, member_id)


@router.get("/{member_id}/properties/{name}", response_model=PropertyValueOut)
def get_member_property(
    member_id: int,
    name: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Resolve one policy property for a member."""
    value = PropertyResolver.resolve(db, member_id, name)
    return PropertyValueOut(member_id=member_id, property=name, value=value)
