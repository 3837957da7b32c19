import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from taskproof.core.config import Settings, get_settings
from taskproof.models.verification import Base
from taskproof.utils.alerting import alert_tracker
from taskproof.utils.rate_limit import rate_limiter


@pytest.fixture(autouse=True)
def _reset_process_state():
    # Tests mutate env vars; never leak a cached Settings instance (or counters) between them.
    get_settings.cache_clear()
    alert_tracker.reset()
    rate_limiter.reset()
    yield
    get_settings.cache_clear()
    alert_tracker.reset()
    rate_limiter.reset()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="test",
        supabase_url="",
        supabase_jwt_secret="test-secret",
        ai_vision_provider="mock",
        ai_allowed_providers=["mock"],
    )


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine)
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
