from datetime import date

import pytest

from cornerstone.exceptions import ValidationError
from cornerstone.models import WasteReport
from cornerstone.services.inventory_service import TransactionEngine
from cornerstone.services.report_service import ReportService


@pytest.fixture
def stocked(session, sites, cement, sand, operator):
    """A: 水泥 5 袋、沙子 2 吨；B: 水泥 20 袋"""
    engine = TransactionEngine(session)
    engine.record_in(sites[0].id, cement.id, 5, operator)
    engine.record_in(sites[0].id, sand.id, 2, operator)
    engine.record_in(sites[1].id, cement.id, 20, operator)
    return sites


@pytest.fixture
def reports(session):
    return ReportService(session, variance_threshold=10)


def test_cost_report_rows_and_totals(reports, stocked):
    result = reports.cost_report()
    rows = {(r['site_name'], r['material_name']): r for r in result['rows']}

    assert rows[('Site A', 'Cement')]['total_value'] == pytest.approx(52.5)
    assert rows[('Site A', 'Sand')]['total_value'] == pytest.approx(60)
    assert rows[('Site B', 'Cement')]['total_value'] == pytest.approx(210)
    # 没有库存行的组合按 0 计
    assert rows[('Site C', 'Cement')]['quantity'] == 0

    summary = result['summary']
    assert summary['total_cost'] == pytest.approx(322.5)
    assert summary['by_site']['Site A'] == pytest.approx(112.5)
    assert summary['by_category']['Cement'] == pytest.approx(262.5)
    assert summary['by_category']['Aggregates'] == pytest.approx(60)


def test_cost_report_for_one_site(reports, stocked):
    result = reports.cost_report(site_id=stocked[1].id)
    assert {r['site_name'] for r in result['rows']} == {'Site B'}
    assert result['summary']['total_cost'] == pytest.approx(210)


def test_reorder_report_lists_lines_below_threshold(reports, stocked):
    result = reports.reorder_report()
    keys = {(r['site_name'], r['material_name']) for r in result['rows']}

    # 水泥阈值 10：A(5) 与 C(0) 不足，B(20) 充足；沙子阈值 0 从不补货
    assert keys == {('Site A', 'Cement'), ('Site C', 'Cement')}
    site_a = next(r for r in result['rows'] if r['site_name'] == 'Site A')
    assert site_a['shortage'] == pytest.approx(5)
    assert site_a['reorder_cost'] == pytest.approx(52.5)
    assert result['summary']['total_reorder_cost'] == pytest.approx(52.5 + 105)
    assert result['summary']['count'] == 2


def _waste(session, site, material, day, expected, actual, notes=None):
    report = WasteReport(site_id=site.id, material_id=material.id, report_date=day,
                         expected_quantity=expected, actual_quantity=actual,
                         variance=actual - expected,
                         variance_percentage=((actual - expected) / expected * 100) if expected else 0.0,
                         notes=notes)
    session.add(report)
    session.commit()
    return report


def test_waste_report_flags_high_variance(session, reports, sites, cement):
    site_a = sites[0]
    _waste(session, site_a, cement, date(2024, 5, 1), 100, 115, notes='Spillage')
    _waste(session, site_a, cement, date(2024, 5, 2), 100, 105)
    _waste(session, site_a, cement, date(2024, 6, 30), 100, 200)

    result = reports.waste_report(date(2024, 5, 1), date(2024, 5, 31))

    assert len(result['rows']) == 2
    flagged = {r['report_date']: r['flagged'] for r in result['rows']}
    assert flagged == {date(2024, 5, 1): True, date(2024, 5, 2): False}
    assert result['summary']['high_variance_count'] == 1
    assert result['summary']['total_variance'] == pytest.approx(20)
    assert result['summary']['total_variance_value'] == pytest.approx(20 * 10.5)


def test_waste_report_date_range_is_inclusive(session, reports, sites, cement):
    _waste(session, sites[0], cement, date(2024, 5, 31), 10, 10)
    result = reports.waste_report(date(2024, 5, 31), date(2024, 5, 31))
    assert len(result['rows']) == 1


def test_zero_expected_is_never_flagged(session, reports, sites, cement):
    _waste(session, sites[0], cement, date(2024, 5, 1), 0, 4)
    row = reports.waste_report(date(2024, 5, 1), date(2024, 5, 1))['rows'][0]
    assert row['variance_percentage'] == 0.0
    assert row['flagged'] is False


def test_dashboard_summary(reports, stocked):
    summary = reports.dashboard_summary()

    assert summary['total_sites'] == 3
    assert summary['active_sites'] == 2
    assert summary['total_alerts'] == 0
    assert summary['total_inventory_value'] == pytest.approx(322.5)
    by_name = {entry['site'].name: entry['materials'] for entry in summary['inventory_by_site']}
    assert len(by_name['Site A']) == 2


def test_generate_rejects_unknown_type(reports):
    with pytest.raises(ValidationError):
        reports.generate('profit')
