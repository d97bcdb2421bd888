import pytest

from cornerstone.exceptions import InsufficientStockError
from cornerstone.models import InventoryLine
from cornerstone.services.ledger_service import InventoryLedger


@pytest.fixture
def ledger(session):
    return InventoryLedger(session)


def test_credit_creates_line(session, ledger, sites, cement):
    balance = ledger.apply_delta(sites[0].id, cement.id, 25)
    session.commit()

    assert balance == 25
    line = session.query(InventoryLine).one()
    assert (line.site_id, line.material_id, line.quantity) == (sites[0].id, cement.id, 25)


def test_repeated_credits_reuse_single_line(session, ledger, sites, cement):
    ledger.apply_delta(sites[0].id, cement.id, 5)
    ledger.apply_delta(sites[0].id, cement.id, 7.5)
    session.commit()

    assert session.query(InventoryLine).count() == 1
    assert ledger.get_quantity(sites[0].id, cement.id) == 12.5


def test_debit_below_zero_is_refused(session, ledger, sites, cement):
    ledger.apply_delta(sites[0].id, cement.id, 5)
    session.commit()

    with pytest.raises(InsufficientStockError):
        ledger.apply_delta(sites[0].id, cement.id, -6)
    session.rollback()

    assert ledger.get_quantity(sites[0].id, cement.id) == 5


def test_debit_on_missing_line_is_refused(session, ledger, sites, cement):
    with pytest.raises(InsufficientStockError):
        ledger.apply_delta(sites[0].id, cement.id, -1)
    assert session.query(InventoryLine).count() == 0


def test_lines_are_independent_per_site(session, ledger, sites, cement, sand):
    ledger.apply_delta(sites[0].id, cement.id, 10)
    ledger.apply_delta(sites[1].id, cement.id, 3)
    ledger.apply_delta(sites[0].id, sand.id, 1)
    session.commit()

    assert ledger.get_quantity(sites[0].id, cement.id) == 10
    assert ledger.get_quantity(sites[1].id, cement.id) == 3
    assert ledger.get_quantity(sites[1].id, sand.id) == 0
    assert ledger.lines.quantities_for_site(sites[0].id) == {cement.id: 10, sand.id: 1}
