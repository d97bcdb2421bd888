from datetime import date

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from cornerstone.exceptions import ValidationError, ResourceNotFoundError, PersistenceError
from cornerstone.models import WasteReport
from cornerstone.services.waste_service import WasteService


@pytest.fixture
def waste(session):
    return WasteService(session)


@pytest.mark.parametrize('expected, actual, variance, percentage', [
    (100, 115, 15, 15.0),
    (100, 90, -10, -10.0),
    (3, 4, 1, 33.33),
    (0, 5, 5, 0.0),
    (0, 0, 0, 0.0),
])
def test_compute_variance(expected, actual, variance, percentage):
    assert WasteService.compute_variance(expected, actual) == (variance, percentage)


def test_record_persists_computed_fields(session, waste, sites, cement, operator):
    report = waste.record(sites[0].id, cement.id, date(2024, 5, 1), 80, 92, operator, notes='Offcuts')

    assert report.id is not None
    assert report.variance == 12
    assert report.variance_percentage == 15.0
    assert report.recorded_by == operator.user_id
    assert report.notes == 'Offcuts'


def test_record_rejects_negative_quantities(waste, sites, cement, operator):
    with pytest.raises(ValidationError):
        waste.record(sites[0].id, cement.id, date(2024, 5, 1), -1, 5, operator)


def test_record_rejects_unknown_site(waste, cement, operator):
    with pytest.raises(ResourceNotFoundError):
        waste.record(9999, cement.id, date(2024, 5, 1), 1, 1, operator)


@pytest.mark.parametrize('expected, actual', [
    (float('nan'), 5),
    (5, float('inf')),
    ('nan', 5),
])
def test_record_rejects_non_finite_quantities(session, waste, sites, cement, operator, expected, actual):
    with pytest.raises(ValidationError):
        waste.record(sites[0].id, cement.id, date(2024, 5, 1), expected, actual, operator)
    assert session.query(WasteReport).count() == 0


def test_database_failure_rolls_back(session, waste, sites, cement, operator, monkeypatch):
    def broken_commit(self):
        raise OperationalError('INSERT INTO waste_reports', {}, Exception('disk I/O error'))

    monkeypatch.setattr(Session, 'commit', broken_commit)

    with pytest.raises(PersistenceError):
        waste.record(sites[0].id, cement.id, date(2024, 5, 1), 10, 12, operator)

    monkeypatch.undo()
    assert session.query(WasteReport).count() == 0
