import itertools

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import loyaltyapi.models  # noqa: F401
from loyaltyapi.models.base import Base
from loyaltyapi.models.customer import Branch, Customer
from loyaltyapi.models.wallet import BranchCoinTransaction, WalletTransaction, WalletTransactionType
from loyaltyapi.schemas.settings import LoyaltySettings


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    SessionTesting = sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )
    session = SessionTesting()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def loyalty_settings():
    """운영 초기값과 같은 기본 스냅샷"""
    return LoyaltySettings()


_codes = itertools.count(1)


@pytest.fixture
def make_customer(db):
    def _make(full_name="Ravi Kumar", phone="9876500000", is_blocked=False, **kwargs):
        customer = Customer(
            full_name=full_name,
            phone=phone,
            referral_code=kwargs.pop("referral_code", f"TEST{next(_codes):04d}"),
            is_blocked=is_blocked,
            **kwargs,
        )
        db.add(customer)
        db.commit()
        return customer

    return _make


@pytest.fixture
def make_branch(db):
    def _make(name="Main Street", available=None, **kwargs):
        branch = Branch(name=name, city="Pune", is_active=kwargs.pop("is_active", True), **kwargs)
        db.add(branch)
        db.flush()
        if available:
            db.add(BranchCoinTransaction(branch_id=branch.id, coins=available, description="seed"))
        db.commit()
        return branch

    return _make


@pytest.fixture
def give_coins(db):
    """고객 지갑에 ADMIN_CREDIT 으로 코인 지급"""

    def _give(customer, coins, tx_type=WalletTransactionType.ADMIN_CREDIT, branch_id=None):
        db.add(
            WalletTransaction(
                customer_id=customer.id,
                coins=coins,
                type=tx_type,
                branch_id=branch_id,
                description="test seed",
            )
        )
        db.commit()

    return _give


