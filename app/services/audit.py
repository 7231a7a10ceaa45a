# app/services/audit.py
from __future__ import annotations

import json
import logging
from typing import Any, Optional, Dict, List

from sqlalchemy.orm import Session
from fastapi import Request

from app.models.audit_log import AuditLog

logger = logging.getLogger("app.audit")


# -----------------------------
# Helpers
# -----------------------------
def ip_from_request(request: Optional[Request]) -> Optional[str]:
    """
    Best-effort client IP extraction compatible with proxies.
    Order:
      - Forwarded (for=)
      - X-Forwarded-For (first in the list)
      - X-Real-IP
      - request.client.host
    """
    if request is None:
        return None
    fwd = request.headers.get("forwarded")
    if fwd:
        for p in (p.strip() for p in fwd.split(";")):
            if p.lower().startswith("for="):
                val = p.split("=", 1)[1].strip().strip('"')
                if val:
                    return val

    xff = request.headers.get("x-forwarded-for")
    if xff:
        first = xff.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    client = getattr(request, "client", None)
    return getattr(client, "host", None)


def _dumps_meta(meta: Optional[Dict[str, Any]]) -> str:
    try:
        return json.dumps(meta or {}, ensure_ascii=False, separators=(",", ":"), default=str)
    except (TypeError, ValueError):
        return json.dumps({"raw": str(meta)}, ensure_ascii=False)


# -----------------------------
# Core API
# -----------------------------
def audit_log(
    db: Session,
    *,
    studio_id: Optional[int],
    user_id: Optional[str],
    action: str,
    entity_type: Optional[str],
    entity_id: Optional[Any],
    meta: Optional[Dict[str, Any]] = None,
    ip: Optional[str] = None,
) -> None:
    """
    Inserts an audit record and commits. Call it after the business write
    has been committed. Never raises: a failed audit must not break the
    main flow, it is logged and rolled back.
    """
    try:
        db.add(
            AuditLog(
                studio_id=studio_id,
                user_id=user_id,
                action=action,
                entity_type=entity_type,
                entity_id=(str(entity_id) if entity_id is not None else None),
                meta=_dumps_meta(meta),
                ip_address=ip,
            )
        )
        db.commit()
    except Exception:
        logger.warning("audit write failed action=%s entity=%s:%s", action, entity_type, entity_id, exc_info=True)
        db.rollback()


def list_audit_logs(
    db: Session,
    *,
    studio_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100,
) -> List[AuditLog]:
    q = db.query(AuditLog)
    if studio_id is not None:
        q = q.filter(AuditLog.studio_id == studio_id)
    if action:
        q = q.filter(AuditLog.action == action)
    return q.order_by(AuditLog.id.desc()).limit(limit).all()
