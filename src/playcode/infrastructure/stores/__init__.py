from .analytics_store import SqlAlchemyAnalyticsStore
from .approval_store import SqlAlchemyApprovalStore
from .onboarding_store import SqlAlchemyOnboardingStore
from .sqlalchemy_db import SessionProvider, create_db_engine, dispose_engines, get_db_url, shared_engine
from .subscription_store import SqlAlchemySubscriptionStore

__all__ = [
    "SessionProvider",
    "SqlAlchemyAnalyticsStore",
    "SqlAlchemyApprovalStore",
    "SqlAlchemyOnboardingStore",
    "SqlAlchemySubscriptionStore",
    "create_db_engine",
    "dispose_engines",
    "get_db_url",
    "shared_engine",
]
