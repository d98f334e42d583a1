import os
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Select the config overlay before the domain is imported."""
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)


@pytest.fixture(scope="session")
def marketplace_bed():
    from marketplace.domain import marketplace

    bed = DomainFixture(marketplace)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(marketplace_bed):
    with marketplace_bed.domain_context():
        yield

        from protean import current_domain

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


@pytest.fixture()
def notifier():
    from marketplace.notification.fake import FakeNotifier

    fake = FakeNotifier()
    yield fake
    fake.reset()


@pytest.fixture()
def app(notifier):
    from marketplace.bootstrap import build_marketplace

    return build_marketplace(notifier)


@pytest.fixture()
def buyer():
    from marketplace.identity import Caller, Role

    return Caller(id="buyer-001", role=Role.CONSUMER)


@pytest.fixture()
def other_buyer():
    from marketplace.identity import Caller, Role

    return Caller(id="buyer-002", role=Role.CONSUMER)


@pytest.fixture()
def farmer():
    from marketplace.identity import Caller, Role

    return Caller(id="farmer-001", role=Role.FARMER)


@pytest.fixture()
def vendor():
    from marketplace.identity import Caller, Role

    return Caller(id="vendor-001", role=Role.VENDOR)


@pytest.fixture()
def admin():
    from marketplace.identity import Caller, Role

    return Caller(id="admin-001", role=Role.ADMIN)


@pytest.fixture()
def register_product():
    """Factory registering a product in the stock ledger; returns its id."""
    from protean import current_domain

    from marketplace.stock.catalogue import RegisterProductStock

    def _register(**overrides):
        defaults = {
            "product_id": "prod-tomato",
            "name": "Organic Tomatoes",
            "price": 120.0,
            "unit": "kg",
            "quantity": 50,
            "seller_id": "farmer-001",
            "seller_type": "farmer",
            "category": "vegetables",
        }
        defaults.update(overrides)
        return current_domain.process(RegisterProductStock(**defaults), asynchronous=False)

    return _register


@pytest.fixture()
def delivery_address():
    return {
        "full_name": "Rahim Uddin",
        "phone": "+8801700000000",
        "address": "12 Lake Road",
        "city": "Dhaka",
        "postal_code": "1205",
        "instructions": "Call on arrival",
    }
