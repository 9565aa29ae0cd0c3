from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import delete, update

from playcode.infrastructure.stores.models import ApprovalModel, Base, as_utc
from playcode.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def token_hash(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class SqlAlchemyApprovalStore:
    """
    Approval proposals keyed by the (hashed) approval token.

    A proposal is pending until a decision is recorded; decided proposals are
    kept for the audit trail but can no longer be acted on.
    """

    def __init__(self, db_url: Optional[str] = None, *, auto_create_schema: bool = True):
        self.db_url = db_url or get_db_url()
        self._provider = SessionProvider(self.db_url)
        if auto_create_schema:
            Base.metadata.create_all(self._provider.engine)

    def save(self, token: str, approval: Dict[str, Any], *, customer_id: str, expires_at: datetime) -> Dict[str, Any]:
        with self._provider.session() as session:
            row = session.get(ApprovalModel, token_hash(token))
            if row is None:
                row = ApprovalModel(token_hash=token_hash(token), created_at=_utcnow())
                session.add(row)
            row.token_prefix = token[:8].upper()
            row.customer_id = customer_id
            row.customer_email = str(approval.get("customerEmail") or "")
            row.customer_name = str(approval.get("customerName") or "")
            row.project_type = str(approval.get("projectType") or "")
            row.status = "pending"
            row.feedback = None
            row.decided_at = None
            row.expires_at = expires_at
            row.set_approval(approval)
            session.commit()
            return self._to_dict(row)

    def get(self, token: str) -> Optional[Dict[str, Any]]:
        with self._provider.session() as session:
            row = session.get(ApprovalModel, token_hash(token))
            return self._to_dict(row) if row else None

    def mark_decided(self, token: str, *, status: str, feedback: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Record a decision on a pending proposal; None when it is missing or already decided."""
        key = token_hash(token)
        with self._provider.session() as session:
            result = session.execute(
                update(ApprovalModel)
                .where(ApprovalModel.token_hash == key, ApprovalModel.status == "pending")
                .values(status=status, feedback=feedback, decided_at=_utcnow())
            )
            session.commit()
            if result.rowcount == 0:
                return None
            return self._to_dict(session.get(ApprovalModel, key))

    def delete(self, token: str) -> bool:
        with self._provider.session() as session:
            row = session.get(ApprovalModel, token_hash(token))
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

    def delete_expired(self, now: Optional[datetime] = None) -> int:
        now = now or _utcnow()
        with self._provider.session() as session:
            result = session.execute(
                delete(ApprovalModel)
                .where(ApprovalModel.expires_at < now)
                .where(ApprovalModel.status == "pending")
            )
            session.commit()
            return int(result.rowcount or 0)

    def close(self) -> None:
        self._provider.engine.dispose()

    @staticmethod
    def _to_dict(row: ApprovalModel) -> Dict[str, Any]:
        return {
            "token_prefix": row.token_prefix,
            "customer_id": row.customer_id,
            "customer_email": row.customer_email,
            "customer_name": row.customer_name,
            "project_type": row.project_type,
            "approval": row.get_approval(),
            "status": row.status,
            "feedback": row.feedback,
            "created_at": as_utc(row.created_at),
            "expires_at": as_utc(row.expires_at),
            "decided_at": as_utc(row.decided_at),
        }
