from hr_payroll.services.base import BaseService
from hr_payroll.models.audit_log import AuditLog
from typing import Any, Optional


def _sanitize(obj: Any) -> Any:
    """Make pydantic models, dates and nested containers JSON-safe."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    if isinstance(obj, dict):
        return {k: _sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_sanitize(i) for i in obj]
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    return obj


class AuditService(BaseService):
    def log_action(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        details: dict,
        actor: Optional[str] = "system",
        before_state: Optional[dict] = None,
        after_state: Optional[dict] = None
    ) -> AuditLog:
        """
        Append an audit entry to the caller's transaction.

        Strictly append-only. The entry is flushed, not committed, so it is
        rolled back together with the action it describes.
        """
        db_log = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor=actor,
            details=_sanitize(details),
            before_state=_sanitize(before_state),
            after_state=_sanitize(after_state)
        )
        self.db.add(db_log)
        try:
            self.db.flush()
        except Exception as e:
            self._logger.error(f"FAILED TO AUDIT LOG: {e}", exc_info=True)
            raise
        return db_log

    # Static wrapper for call sites without a service instance
    @staticmethod
    def log(db, *args, **kwargs):
        service = AuditService(db)
        return service.log_action(*args, **kwargs)
