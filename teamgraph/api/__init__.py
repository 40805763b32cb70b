from fastapi import APIRouter
from . import teams, invitations, members, usage


router = APIRouter()
router.include_router(teams.router, prefix="/teams", tags=["teams"])
router.include_router(invitations.router, prefix="/invitations", tags=["invitations"])
router.include_router(members.router, prefix="/members", tags=["members"])
router.include_router(usage.router, prefix="/usage", tags=["usage"])
