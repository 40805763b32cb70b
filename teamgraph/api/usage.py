from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from teamgraph.api.deps import require_service_token
from teamgraph.db.session import get_db
from teamgraph.schemas.usage import UsageOutcome, UsageRecord
from teamgraph.services.budget_ledger import BudgetLedger

router = APIRouter()


@router.post("", response_model=UsageOutcome, dependencies=[Depends(require_service_token)])
def record_usage(record: UsageRecord, db: Session = Depends(get_db)):
    """
    Record a usage event reported by the metering pipeline. Internal only:
    callers send the X-Service-Token header.

    Safe to retry with the same event_id; replays are reported with
    duplicate=true and change nothing.
    """
    return BudgetLedger.record_usage(db, record.user_id, record.cost_cents, record.event_id)
