from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from bootstrap_import_catalog_to_db import import_catalog
from conftest import TODAY
from core.db import Base
from core.errors import WeekdayAlreadySubscribed
from models import db_models  # noqa: F401
from models.domain import BlackoutDate, PaymentMethod, PointType, PurchaseOrder, SubscriptionStatus
from services.carpool_db_service import CarpoolDBStore
from services.pricing import BillingWindow


@pytest_asyncio.fixture()
async def db_store(store):
    """CarpoolDBStore over an in-memory SQLite database seeded from the catalog."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with session_maker() as session:
        target = CarpoolDBStore(session)
        await import_catalog(store, target)
        yield target
    await engine.dispose()


def _order(weekdays=(1, 3), method=PaymentMethod.ONLINE):
    return PurchaseOrder(
        user_id="cust-1",
        route_id="uttara-motijheel",
        weekdays=list(weekdays),
        time_slot_id="um-t1",
        pickup_point_id="um-p1",
        drop_off_point_id="um-d1",
        start_date=BillingWindow.next_month(TODAY).start,
        payment_method=method,
    )


@pytest.mark.asyncio
async def test_catalog_reads(db_store):
    routes = await db_store.list_routes()
    assert [r.id for r in routes] == ["mirpur-gulshan", "uttara-motijheel"]
    uttara = await db_store.get_route("uttara-motijheel")
    assert uttara.price_per_seat == Decimal("120")
    assert uttara.weekdays == [0, 1, 2, 3, 4]

    pickups = await db_store.list_pickup_points("mirpur-gulshan", PointType.PICKUP)
    assert [p.id for p in pickups] == ["mg-p1"]
    slots = await db_store.list_time_slots("uttara-motijheel")
    assert [s.departure_time for s in slots] == ["07:30", "08:15"]


@pytest.mark.asyncio
async def test_quote_uses_blackouts(db_store):
    dec = BillingWindow.next_month(BillingWindow.next_month(TODAY).start)
    quote = await db_store.quote("uttara-motijheel", [3], dec)
    assert quote.blackout_days_excluded == 1
    assert quote.monthly_total == Decimal("480")


@pytest.mark.asyncio
async def test_online_purchase_debits_and_records(db_store):
    await db_store.top_up("cust-1", "2000")
    outcome = await db_store.purchase(_order(), TODAY)
    assert outcome.subscription is not None
    assert outcome.subscription.status == SubscriptionStatus.ACTIVE
    assert outcome.subscription.monthly_fee == Decimal("1080")

    wallet = await db_store.get_wallet("cust-1")
    assert wallet.balance == Decimal("920")
    txns = await db_store.wallet_transactions("cust-1")
    assert sorted(t.type.value for t in txns) == ["credit", "debit"]
    debit = next(t for t in txns if t.type.value == "debit")
    assert debit.reference_id == outcome.subscription.id


@pytest.mark.asyncio
async def test_insufficient_balance_leaves_no_trace(db_store):
    await db_store.top_up("cust-1", "50")
    outcome = await db_store.purchase(_order(), TODAY)
    assert outcome.insufficient_balance
    assert outcome.funding.shortfall == Decimal("1030")
    assert await db_store.list_subscriptions("cust-1") == []
    assert (await db_store.get_wallet("cust-1")).balance == Decimal("50")


@pytest.mark.asyncio
async def test_cash_purchase_and_weekday_invariant(db_store):
    first = await db_store.purchase(_order(method=PaymentMethod.CASH), TODAY)
    assert first.subscription is not None
    assert (await db_store.get_wallet("cust-1")).balance == Decimal("0")

    with pytest.raises(WeekdayAlreadySubscribed):
        await db_store.purchase(_order(weekdays=(3, 4), method=PaymentMethod.CASH), TODAY)
    assert await db_store.subscribed_weekdays("cust-1") == {"uttara-motijheel": [1, 3]}


@pytest.mark.asyncio
async def test_cancel_is_idempotent(db_store):
    outcome = await db_store.purchase(_order(method=PaymentMethod.CASH), TODAY)
    sub, changed = await db_store.cancel_subscription("cust-1", outcome.subscription.id)
    assert changed and sub.status == SubscriptionStatus.PENDING_CANCELLATION
    sub, changed = await db_store.cancel_subscription("cust-1", outcome.subscription.id)
    assert not changed and sub.status == SubscriptionStatus.PENDING_CANCELLATION
    assert await db_store.list_subscriptions("cust-1", active_only=True) == []


@pytest.mark.asyncio
async def test_blackout_admin(db_store):
    blackout = await db_store.add_blackout_date(BlackoutDate(
        name="Strike", start_date=TODAY, end_date=TODAY, route_id="mirpur-gulshan"))
    listed = await db_store.list_blackout_dates("uttara-motijheel")
    assert blackout.id not in {b.id for b in listed}
    listed = await db_store.list_blackout_dates("mirpur-gulshan")
    assert blackout.id in {b.id for b in listed}
    assert await db_store.delete_blackout_date(blackout.id) is True
    assert await db_store.delete_blackout_date(blackout.id) is False


@pytest.mark.asyncio
async def test_wallet_created_by_concurrent_request_is_reused(tmp_path, monkeypatch):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'carpool.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    async with session_maker() as first, session_maker() as second:
        store = CarpoolDBStore(first)
        real_execute = first.execute
        raced = []

        async def execute_then_race(stmt, *args, **kwargs):
            result = await real_execute(stmt, *args, **kwargs)
            if not raced:
                # another request creates the wallet right after our lookup missed it
                raced.append(True)
                second.add(db_models.Wallet(id="w-other", user_id="cust-9", balance=Decimal("25")))
                await second.commit()
            return result

        monkeypatch.setattr(first, "execute", execute_then_race)
        wallet = await store.get_wallet("cust-9")

    assert wallet.id == "w-other"
    assert wallet.balance == Decimal("25")
    await engine.dispose()


@pytest.mark.asyncio
async def test_repeat_weekday_for_new_customer_is_conflict_without_debit(db_store):
    first = await db_store.purchase(_order(method=PaymentMethod.CASH), TODAY)
    assert first.subscription is not None
    with pytest.raises(WeekdayAlreadySubscribed):
        await db_store.purchase(_order(weekdays=(1,), method=PaymentMethod.CASH), TODAY)
    wallet = await db_store.get_wallet("cust-1")
    assert wallet.balance == Decimal("0")
    assert [s.id for s in await db_store.list_subscriptions("cust-1")] == [first.subscription.id]
