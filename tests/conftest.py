from decimal import Decimal
from typing import Generator

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from db.models import Base
from db.repositories import QuotationRepository
from domain.assembler import QuotationAssembler
from domain.engine import QuotationEngine
from domain.quotation import ClientInfo, CurrencySettings, Itinerary, PercentageMarkup, PricingOptions, Quotation
from domain.versioning import VersionManager
from tests.constants import CLIENT_EMAIL, CLIENT_NAME, USD_RATES
from tests.helpers.clock import FixedClock
from tests.helpers.factories import make_itinerary

engine: Engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
session_factory = sessionmaker(engine)


@pytest.fixture(scope="function")
def test_session() -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session


@pytest.fixture(scope="function", autouse=True)
def reset_db() -> Generator[None, None, None]:
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture(scope="function")
def versions(clock: FixedClock) -> VersionManager:
    return VersionManager(clock=clock)


@pytest.fixture(scope="function")
def quotation_engine(versions: VersionManager) -> QuotationEngine:
    return QuotationEngine(versions=versions)


@pytest.fixture(scope="function")
def assembler(clock: FixedClock, versions: VersionManager) -> QuotationAssembler:
    return QuotationAssembler(versions=versions, clock=clock)


@pytest.fixture(scope="function")
def repository(test_session: Session, clock: FixedClock) -> QuotationRepository:
    return QuotationRepository(test_session, clock=clock)


@pytest.fixture(scope="function")
def itinerary() -> Itinerary:
    # Subtotal 1000: 400 + 250 on day one, 350 plus an unpriced event on day two.
    return make_itinerary(
        [Decimal("400"), Decimal("250")],
        [Decimal("350"), None],
    )


@pytest.fixture(scope="function")
def quotation(assembler: QuotationAssembler, itinerary: Itinerary) -> Quotation:
    return assembler.from_itinerary(
        itinerary,
        ClientInfo(name=CLIENT_NAME, email=CLIENT_EMAIL),
        PricingOptions(markup=PercentageMarkup(value=Decimal("10"))),
        currency_settings=CurrencySettings(base_currency="USD", display_currency="USD", exchange_rates=USD_RATES),
    )
