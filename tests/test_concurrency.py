import threading
from datetime import date

import pytest

from cornerstone import create_app
from cornerstone.exceptions import InsufficientStockError, PersistenceError
from cornerstone.extensions import db
from cornerstone.models import Site, Material, Transaction
from cornerstone.services.inventory_service import TransactionEngine
from cornerstone.services.ledger_service import InventoryLedger
from cornerstone.utils.context import Operator


@pytest.fixture
def file_app(tmp_path):
    """文件型 SQLite，多个线程各自持有连接"""
    app = create_app('testing', SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'concurrency.db'}")
    with app.app_context():
        db.create_all()
        site = Site(name='Site A', location='Accra', start_date=date(2024, 1, 1))
        material = Material(name='Cement', category='Cement', unit_of_measure='bag', unit_cost=10)
        db.session.add_all([site, material])
        db.session.commit()
        TransactionEngine(db.session).record_in(site.id, material.id, 10, Operator(user_id=None))
        ids = (site.id, material.id)
        db.session.remove()
    yield app, ids
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


def test_concurrent_overdraw_lets_at_most_one_succeed(file_app):
    app, (site_id, material_id) = file_app
    barrier = threading.Barrier(2)
    outcomes = []
    lock = threading.Lock()

    def withdraw():
        with app.app_context():
            engine = TransactionEngine(db.session)
            barrier.wait()
            try:
                engine.record_out(site_id, material_id, 7, Operator(user_id=None))
                result = 'ok'
            except (InsufficientStockError, PersistenceError) as e:
                result = type(e).__name__
            finally:
                db.session.remove()
            with lock:
                outcomes.append(result)

    threads = [threading.Thread(target=withdraw) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert len(outcomes) == 2
    successes = outcomes.count('ok')
    assert successes == 1

    with app.app_context():
        remaining = InventoryLedger(db.session).get_quantity(site_id, material_id)
        outs = db.session.query(Transaction).filter_by(transaction_type=Transaction.TYPE_OUT).count()
        assert remaining >= 0
        assert remaining == 10 - 7 * successes
        assert outs == successes
