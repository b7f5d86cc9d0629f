from flask import request, current_app, has_request_context
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError
from salon.models.audit import AuditLog
from salon import db


def _request_user_id():
    if has_request_context() and current_user and current_user.is_authenticated:
        return current_user.id
    return None


def log_audit(action, entity_type, entity_id=None, details=None, success=True):
    """
    Log an audit entry

    Parameters:
    - action: The action performed (e.g., 'create', 'update', 'permission_denied')
    - entity_type: The type of entity affected (e.g., 'appointment', 'promotion')
    - entity_id: ID of the affected entity (optional)
    - details: Additional details about the action (optional)
    - success: False for attempts that were refused or failed
    """
    try:
        audit_entry = AuditLog(
            user_id=_request_user_id(),
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
            ip_address=request.remote_addr if has_request_context() else None,
            success=success
        )

        db.session.add(audit_entry)
        db.session.commit()

        return True
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to log audit entry: {e}")
        return False


def report_permission_error(path, operation, payload=None):
    """
    Route a refused operation to the diagnostic channel

    Parameters:
    - path: The resource the user tried to touch (e.g., 'appointments/12')
    - operation: 'create', 'update', 'delete' or 'read'
    - payload: The data the user attempted to write, if any
    """
    current_app.logger.warning(
        f"Permission denied: user={_request_user_id()} {operation} {path}"
    )
    entity_type = path.split('/')[0]
    return log_audit(
        'permission_denied',
        entity_type,
        details={'path': path, 'operation': operation, 'request_data': payload},
        success=False
    )
