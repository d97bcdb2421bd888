from datetime import datetime, timedelta

import pytest

from cornerstone.exceptions import ResourceNotFoundError
from cornerstone.models import Alert, Site
from cornerstone.services.alert_service import AlertEvaluator
from cornerstone.services.inventory_service import TransactionEngine


@pytest.fixture
def engine(session):
    return TransactionEngine(session)


@pytest.fixture
def evaluator(session):
    return AlertEvaluator(session, analysis_days=30, horizon_days=7, alert_percentage=20)


def open_alerts(session):
    return session.query(Alert).filter_by(is_resolved=False).all()


class TestClassify:

    def test_below_threshold_is_low_stock(self, evaluator):
        alert_type, message = evaluator.classify(5, 10, 0)
        assert alert_type == Alert.TYPE_LOW_STOCK
        assert '5.00' in message and '10.00' in message

    def test_at_threshold_is_not_low_stock(self, evaluator):
        assert evaluator.classify(10, 10, 0) == (None, None)

    def test_projected_shortfall_is_predictive(self, evaluator):
        # 20 - 2 * 7 = 6 < 10 * 1.2
        alert_type, message = evaluator.classify(20, 10, 2)
        assert alert_type == Alert.TYPE_PREDICTIVE_REORDER
        assert '5.0 days' in message

    def test_comfortable_stock_raises_nothing(self, evaluator):
        # 100 - 2 * 7 = 86 >= 12
        assert evaluator.classify(100, 10, 2) == (None, None)

    def test_no_usage_means_no_prediction(self, evaluator):
        assert evaluator.classify(11, 10, 0) == (None, None)

    def test_zero_threshold_never_alerts(self, evaluator):
        assert evaluator.classify(0, 0, 50) == (None, None)


def test_low_stock_alert_after_out(session, engine, evaluator, sites, cement, operator):
    site_a = sites[0]
    engine.record_in(site_a.id, cement.id, 12, operator)
    engine.record_out(site_a.id, cement.id, 7, operator)

    created = evaluator.evaluate_pair(site_a.id, cement.id)

    assert created is not None
    assert created.alert_type == Alert.TYPE_LOW_STOCK
    assert created.message.startswith('Cement at Site A:')


def test_predictive_alert_from_recent_usage(session, engine, evaluator, sites, cement, operator):
    site_a = sites[0]
    engine.record_in(site_a.id, cement.id, 80, operator)
    engine.record_out(site_a.id, cement.id, 60, operator)

    assert evaluator.average_daily_usage(site_a.id, cement.id) == pytest.approx(2.0)
    created = evaluator.evaluate_pair(site_a.id, cement.id)
    assert created.alert_type == Alert.TYPE_PREDICTIVE_REORDER


def test_usage_outside_window_is_ignored(session, engine, evaluator, sites, cement, operator):
    site_a = sites[0]
    engine.record_in(site_a.id, cement.id, 80, operator)
    engine.record_out(site_a.id, cement.id, 60, operator)

    later = datetime.utcnow() + timedelta(days=31)
    assert evaluator.average_daily_usage(site_a.id, cement.id, now=later) == 0


def test_transfer_out_counts_as_usage(session, engine, evaluator, sites, cement, operator):
    site_a, site_b, _ = sites
    engine.record_in(site_a.id, cement.id, 100, operator)
    engine.record_transfer(site_a.id, site_b.id, cement.id, 30, operator)

    assert evaluator.average_daily_usage(site_a.id, cement.id) == pytest.approx(1.0)
    assert evaluator.average_daily_usage(site_b.id, cement.id) == 0


def test_evaluation_is_idempotent(session, engine, evaluator, sites, cement, operator):
    site_a = sites[0]
    engine.record_in(site_a.id, cement.id, 5, operator)

    evaluator.evaluate_pair(site_a.id, cement.id)
    assert evaluator.evaluate_pair(site_a.id, cement.id) is None
    assert len(open_alerts(session)) == 1


def test_restock_resolves_alert(session, engine, evaluator, sites, cement, operator):
    site_a = sites[0]
    engine.record_in(site_a.id, cement.id, 5, operator)
    evaluator.evaluate_pair(site_a.id, cement.id)

    engine.record_in(site_a.id, cement.id, 500, operator)
    evaluator.evaluate_pair(site_a.id, cement.id)

    assert open_alerts(session) == []
    resolved = session.query(Alert).one()
    assert resolved.is_resolved and resolved.resolved_at is not None


def test_alert_type_switches_when_condition_changes(session, engine, evaluator, sites, cement, operator):
    site_a = sites[0]
    engine.record_in(site_a.id, cement.id, 5, operator)
    evaluator.evaluate_pair(site_a.id, cement.id)

    # 回到阈值以上，但近期用量很大
    engine.record_in(site_a.id, cement.id, 100, operator)
    engine.record_out(site_a.id, cement.id, 90, operator)
    evaluator.evaluate_pair(site_a.id, cement.id)

    alerts = open_alerts(session)
    assert [a.alert_type for a in alerts] == [Alert.TYPE_PREDICTIVE_REORDER]


def test_finished_sites_are_skipped(session, engine, evaluator, sites, cement, operator):
    site_c = sites[2]
    engine.record_in(site_c.id, cement.id, 1, operator)
    assert evaluator.evaluate_pair(site_c.id, cement.id) is None
    assert open_alerts(session) == []


def test_evaluate_all_scans_operational_sites(session, evaluator, sites, cement, sand):
    # 所有库存为 0：水泥阈值 10 -> 低库存；沙子阈值 0 -> 无预警
    created = evaluator.evaluate_all()

    assert created == 2
    assert {a.site_id for a in open_alerts(session)} == {sites[0].id, sites[1].id}
    assert evaluator.evaluate_all() == 0


def test_evaluate_all_closes_alerts_of_finished_sites(session, evaluator, sites, cement):
    site_a = sites[0]
    evaluator.evaluate_all()
    site_a.status = Site.STATUS_FINISHED
    session.commit()

    evaluator.evaluate_all()
    assert {a.site_id for a in open_alerts(session)} == {sites[1].id}


def test_manual_resolve_and_statistics(session, evaluator, sites, cement):
    evaluator.evaluate_all()
    stats = evaluator.statistics()
    assert stats == {'total': 2, 'low_stock': 2, 'predictive_reorder': 0, 'other': 0}

    alert = evaluator.active_alerts()[0]
    evaluator.resolve(alert.id)
    assert evaluator.statistics()['total'] == 1
    assert len(evaluator.active_alerts(site_id=alert.site_id)) == 0

    with pytest.raises(ResourceNotFoundError):
        evaluator.resolve(9999)


def test_config_defaults_are_used(app, session):
    app.config['USAGE_ANALYSIS_DAYS'] = 14
    evaluator = AlertEvaluator(session)
    assert evaluator.analysis_days == 14
    assert evaluator.horizon_days == 7
    assert evaluator.alert_percentage == 20
