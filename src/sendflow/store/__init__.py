from sendflow.config import BACKEND_SQL, Settings
from sendflow.store.base import LedgerStore
from sendflow.store.sql_store import SqlStore
from sendflow.store.supabase_store import SupabaseStore

__all__ = ["LedgerStore", "SqlStore", "SupabaseStore", "build_store"]


def build_store(settings: Settings) -> LedgerStore:
    """
    Store for the configured backend. Raises ConfigurationError when the
    Supabase backend is selected without its URL and service role key.
    """
    if settings.backend == BACKEND_SQL:
        from sendflow.db.session import build_engine, build_sessionmaker

        engine = build_engine(settings.database_url)
        return SqlStore(build_sessionmaker(engine), engine=engine)

    settings.require_supabase()
    return SupabaseStore(
        settings.supabase_url,
        settings.supabase_service_role_key,
        timeout=settings.request_timeout,
    )
