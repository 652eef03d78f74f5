"""
Audit trail endpoints (read-only)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from .system import AccountingSystem, get_accounting_system


router = APIRouter()


@router.get("/events")
async def get_audit_events(
    limit: Optional[int] = Query(100, gt=0),
    system: AccountingSystem = Depends(get_accounting_system)
):
    """Get the latest audit events"""
    return {"events": [event.to_dict() for event in system.audit_trail.get_all_events(limit=limit)]}


@router.get("/events/{entity_type}/{entity_id}")
async def get_entity_audit_events(
    entity_type: str,
    entity_id: str,
    system: AccountingSystem = Depends(get_accounting_system)
):
    """Get audit events of one account or transaction"""
    events = system.audit_trail.get_events_for_entity(entity_type, entity_id)
    return {"events": [event.to_dict() for event in events]}


@router.get("/integrity")
async def verify_audit_integrity(system: AccountingSystem = Depends(get_accounting_system)):
    """Verify the audit hash chain"""
    return system.audit_trail.verify_integrity()
