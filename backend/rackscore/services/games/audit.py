import json

from rackscore.models import AdminAuditLog


def record_admin_audit(session, game_id, action, entity_type, entity_id=None, details=None, actor=None):
    """Stage an audit row inside the caller's transaction."""
    entry = AdminAuditLog(
        game_id=game_id,
        actor=actor,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=json.dumps(details) if details is not None else None,
    )
    session.add(entry)
    return entry


def audit_trail(session, game_id):
    return (
        session.query(AdminAuditLog)
        .filter_by(game_id=game_id)
        .order_by(AdminAuditLog.created_at.asc(), AdminAuditLog.id.asc())
        .all()
    )
