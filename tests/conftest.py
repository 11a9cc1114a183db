import pytest
from decimal import Decimal

from app import create_app
from app.database import get_database, get_session
from app.models import InventoryItem, Partner, Sale, SaleLine
from app.stores import SqlAlchemyStore


class RecordingNotifier:
    """Notifier double that records calls and returns a canned result."""

    def __init__(self, result=None, exc=None):
        self.calls = []
        self.result = result if result is not None else {'success': True, 'method': 'simple'}
        self.exc = exc

    def send(self, phone_number, sale, method=None):
        self.calls.append({'phone': phone_number, 'sale': sale, 'method': method})
        if self.exc is not None:
            raise self.exc
        return self.result


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.TestConfig')
    return app


@pytest.fixture(autouse=True)
def app_context(app):
    """Fresh schema for every test, inside an application context."""
    with app.app_context():
        database = get_database()
        database.create_all()
        yield
        database.remove()
        database.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session():
    """Database session shared with the code under test."""
    session = get_session()
    yield session
    session.rollback()


@pytest.fixture(scope='function')
def store(session):
    return SqlAlchemyStore(session)


@pytest.fixture(scope='function')
def notifier(app, monkeypatch):
    """Replace the app notifier with a recording double."""
    fake = RecordingNotifier()
    monkeypatch.setitem(app.extensions, 'notifier', fake)
    return fake


@pytest.fixture(scope='function')
def make_item(session):
    """Factory for inventory items."""
    counter = {'n': 0}

    def _make_item(name=None, sku=None, sell_price='10.00', buy_price='6.00', quantity=10, min_stock=0, **extra):
        counter['n'] += 1
        item = InventoryItem(
            name=name or f"Item {counter['n']}",
            sku=sku or f"SKU-{counter['n']:03d}",
            sell_price=Decimal(str(sell_price)),
            buy_price=Decimal(str(buy_price)),
            quantity=quantity,
            min_stock=min_stock,
            **extra
        )
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    return _make_item


@pytest.fixture(scope='function')
def make_partner(session):
    """Factory for partners."""

    def _make_partner(name='Nimal Perera', type='investor', phone_no=None):
        partner = Partner(name=name, type=type, phone_no=phone_no)
        session.add(partner)
        session.commit()
        session.refresh(partner)
        return partner

    return _make_partner


@pytest.fixture(scope='function')
def item_a(make_item):
    """Item A: stock 10, price 100.00"""
    return make_item(name='Phone Case', sku='A-001', sell_price='100.00', buy_price='60.00', quantity=10)


@pytest.fixture(scope='function')
def item_b(make_item):
    """Item B: stock 3, price 50.00"""
    return make_item(name='Screen Guard', sku='B-001', sell_price='50.00', buy_price='20.00', quantity=3)


@pytest.fixture(scope='function')
def stock_of(session):
    """Current on-hand quantity read straight from the database."""

    def _stock_of(item_id):
        session.expire_all()
        return session.get(InventoryItem, item_id).quantity

    return _stock_of


@pytest.fixture(scope='function')
def counts(session):
    """Row counts of sales and sale lines."""

    def _counts():
        return session.query(Sale).count(), session.query(SaleLine).count()

    return _counts
