"""SLA configuration and manual escalation sweep endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from civicsense.core.deps import get_current_actor, require_permission
from civicsense.core.rbac import Actor
from civicsense.db.session import get_db
from civicsense.models.sla_config import SLAConfig
from civicsense.schemas.engine import SLAConfigOut, SweepResultOut
from civicsense.services.escalation import run_escalation_sweep

router = APIRouter(dependencies=[Depends(get_current_actor)])
logger = logging.getLogger(__name__)

_PRIORITY_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}


@router.get("/config", response_model=list[SLAConfigOut])
def get_sla_config(db: Session = Depends(get_db)) -> list[SLAConfigOut]:
    rows = db.execute(select(SLAConfig)).scalars().all()
    rows = sorted(rows, key=lambda row: _PRIORITY_ORDER.get(getattr(row.priority, "value", row.priority), 99))
    return [SLAConfigOut.model_validate(row) for row in rows]


@router.post("/sweep", response_model=SweepResultOut)
def post_escalation_sweep(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("manage_sla")),
) -> SweepResultOut:
    logger.info("Manual escalation sweep requested by %s", actor.id)
    result = run_escalation_sweep(db)
    return SweepResultOut(**result.to_dict())
