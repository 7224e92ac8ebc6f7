from typing import Any, Dict, Optional

from sqlalchemy import and_, or_

from freelancedash.models.audit_log import AuditLog


def record_event(
    session,
    entity_type: str,
    entity_id: str,
    action: str,
    actor_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Append an audit entry to the caller's transaction.

    Nothing is committed here so the entry lands or rolls back together
    with the transition it describes.
    """
    entry = AuditLog(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        actor_id=actor_id,
        details=details,
    )
    session.add(entry)
    return entry


def list_project_events(session, project):
    """Trail of the project together with its invitations and contract."""
    keys = [("project", project.id)]
    keys += [("invitation", inv.id) for inv in project.invitations]
    if project.contract is not None:
        keys.append(("contract", project.contract.id))

    return (
        session.query(AuditLog)
        .filter(or_(*[and_(AuditLog.entity_type == t, AuditLog.entity_id == i) for t, i in keys]))
        .order_by(AuditLog.created_at.asc(), AuditLog.id.asc())
        .all()
    )
