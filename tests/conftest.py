import pytest

from ledger import Ledger, LedgerDatabase
from tests.fakes import make_ui


@pytest.fixture
def ui():
    return make_ui()


@pytest.fixture
def database():
    db = LedgerDatabase(":memory:")
    Ledger(db).setup()
    yield db
    db.close()


@pytest.fixture
def ledger(database):
    return Ledger(database)
