from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, select

from playcode.infrastructure.stores.models import Base, SubscriptionModel, as_utc
from playcode.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SqlAlchemySubscriptionStore:
    """Subscriptions created at checkout and updated by payment webhooks."""

    def __init__(self, db_url: Optional[str] = None, *, auto_create_schema: bool = True):
        self.db_url = db_url or get_db_url()
        self._provider = SessionProvider(self.db_url)
        if auto_create_schema:
            Base.metadata.create_all(self._provider.engine)

    def upsert(self, data: Dict[str, Any]) -> Dict[str, Any]:
        now = _utcnow()
        with self._provider.session() as session:
            row = session.get(SubscriptionModel, data["id"])
            if row is None:
                row = SubscriptionModel(id=data["id"], created_at=now)
                session.add(row)
            for key in (
                "reference_id",
                "plan_id",
                "billing_cycle",
                "customer_email",
                "customer_name",
                "amount",
                "setup_fee",
                "status",
                "checkout_url",
                "mock",
                "onboarding_id",
            ):
                if key in data and data[key] is not None:
                    setattr(row, key, data[key])
            if "customer" in data:
                row.set_customer(data["customer"] or {})
            row.updated_at = now
            session.commit()
            return self._to_dict(row)

    def get(self, subscription_id: str) -> Optional[Dict[str, Any]]:
        with self._provider.session() as session:
            row = session.get(SubscriptionModel, subscription_id)
            return self._to_dict(row) if row else None

    def set_status(self, subscription_id: str, status: str) -> Optional[Dict[str, Any]]:
        with self._provider.session() as session:
            row = session.get(SubscriptionModel, subscription_id)
            if row is None:
                return None
            row.status = status
            row.updated_at = _utcnow()
            session.commit()
            return self._to_dict(row)

    def add_payment(self, subscription_id: str, payment: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._provider.session() as session:
            row = session.get(SubscriptionModel, subscription_id)
            if row is None:
                return None
            payments = row.get_payments()
            payments.append(payment)
            row.set_payments(payments)
            row.updated_at = _utcnow()
            session.commit()
            return self._to_dict(row)

    def list_by_email(self, email: str) -> List[Dict[str, Any]]:
        with self._provider.session() as session:
            stmt = (
                select(SubscriptionModel)
                .where(SubscriptionModel.customer_email == email.strip().lower())
                .order_by(desc(SubscriptionModel.created_at))
            )
            return [self._to_dict(r) for r in session.execute(stmt).scalars()]

    def close(self) -> None:
        self._provider.engine.dispose()

    @staticmethod
    def _to_dict(row: SubscriptionModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "reference_id": row.reference_id,
            "plan_id": row.plan_id,
            "billing_cycle": row.billing_cycle,
            "customer_email": row.customer_email,
            "customer_name": row.customer_name,
            "customer": row.get_customer(),
            "amount": row.amount,
            "setup_fee": row.setup_fee,
            "status": row.status,
            "checkout_url": row.checkout_url,
            "mock": bool(row.mock),
            "onboarding_id": row.onboarding_id,
            "payments": row.get_payments(),
            "created_at": as_utc(row.created_at).isoformat() if row.created_at else None,
            "updated_at": as_utc(row.updated_at).isoformat() if row.updated_at else None,
        }
