from datetime import date

import pytest

from cornerstone import create_app
from cornerstone.extensions import db
from cornerstone.models import User, Site, Material
from cornerstone.utils.context import Operator


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def session(app):
    return db.session


def make_user(username, role=User.ROLE_END_USER, password='password123'):
    user = User(username=username, email=f'{username}@example.com',
                full_name=username.title(), role=role)
    user.password = password
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def admin(app):
    return make_user('admin', role=User.ROLE_ADMIN)


@pytest.fixture
def viewer(app):
    return make_user('viewer')


@pytest.fixture
def operator(admin):
    return Operator.from_user(admin, ip_address='127.0.0.1')


@pytest.fixture
def sites(app):
    """三个站点：A、B 在建，C 已完工"""
    site_a = Site(name='Site A', location='Accra', start_date=date(2024, 1, 1))
    site_b = Site(name='Site B', location='Kumasi', start_date=date(2024, 3, 1))
    site_c = Site(name='Site C', location='Tema', start_date=date(2023, 1, 1),
                  status=Site.STATUS_FINISHED, completion_percentage=100)
    db.session.add_all([site_a, site_b, site_c])
    db.session.commit()
    return site_a, site_b, site_c


@pytest.fixture
def cement(app):
    material = Material(name='Cement', category='Cement', unit_of_measure='bag',
                        unit_cost=10.5, reorder_threshold=10)
    db.session.add(material)
    db.session.commit()
    return material


@pytest.fixture
def sand(app):
    material = Material(name='Sand', category='Aggregates', unit_of_measure='ton',
                        unit_cost=30, reorder_threshold=0)
    db.session.add(material)
    db.session.commit()
    return material


def login(client, username, password='password123'):
    return client.post('/auth/login', data={'login': username, 'password': password},
                       follow_redirects=True)


@pytest.fixture
def admin_client(app, admin):
    client = app.test_client()
    login(client, 'admin')
    return client


@pytest.fixture
def viewer_client(app, viewer):
    client = app.test_client()
    login(client, 'viewer')
    return client


@pytest.fixture
def client(app):
    return app.test_client()
