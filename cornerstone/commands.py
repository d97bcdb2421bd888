import click
import random
from datetime import datetime, timedelta
from flask.cli import with_appcontext
from sqlalchemy.exc import SQLAlchemyError
from cornerstone.extensions import db
from cornerstone.exceptions import CornerstoneException
from cornerstone.models import User, Site, Material, InventoryLine, Transaction, Alert, WasteReport
from cornerstone.services.inventory_service import TransactionEngine
from cornerstone.services.alert_service import AlertEvaluator
from cornerstone.services.account_service import AccountService
from cornerstone.services.waste_service import WasteService
from cornerstone.utils.context import Operator
from cornerstone.utils.fake_gen import fake


@click.command('status')
@with_appcontext
def status():
    """
    [验证指令] 查看当前数据库中的数据统计。
    """
    click.echo(click.style('📊 Cornerstone database status:', fg='cyan', bold=True))

    try:
        click.echo(f" - Users: \t\t{User.query.count()}")
        click.echo(f" - Sites: \t\t{Site.query.count()}")
        click.echo(f" - Materials: \t\t{Material.query.count()}")
        click.echo(f" - Inventory lines: \t{InventoryLine.query.count()}")
        click.echo(f" - Transactions: \t{Transaction.query.count()}")
        click.echo(f" - Open alerts: \t{Alert.query.filter_by(is_resolved=False).count()}")

        if User.query.count() > 0:
            click.echo(click.style('✔ Database reachable, data present.', fg='green'))
        else:
            click.echo(click.style('⚠ Database is empty, run `flask forge` to seed demo data.', fg='yellow'))

    except SQLAlchemyError as e:
        click.echo(click.style(f"✘ Database read failed: {e}", fg='red'))
        click.echo("Check that `flask db upgrade` has been run.")


@click.command('create-admin')
@click.argument('username')
@click.argument('email')
@click.option('--full-name', default='', help='显示名称')
@click.password_option()
@with_appcontext
def create_admin(username, email, full_name, password):
    """创建管理员账号"""
    try:
        user = AccountService(db.session).register(
            username=username, email=email, password=password,
            full_name=full_name or username, role=User.ROLE_ADMIN
        )
    except CornerstoneException as e:
        raise click.ClickException(e.message)
    click.echo(click.style(f'✔ Administrator {user.username} created.', fg='green'))


@click.command('evaluate-alerts')
@with_appcontext
def evaluate_alerts():
    """全量评估库存预警 (可由定时任务调用)"""
    created = AlertEvaluator(db.session).evaluate_all()
    stats = AlertEvaluator(db.session).statistics()
    click.echo(f"New alerts: {created}")
    click.echo(f"Open alerts: {stats['total']} "
               f"(low stock {stats['low_stock']}, predictive {stats['predictive_reorder']})")


@click.command('forge')
@click.option('--scale', default=1, help='数据规模倍数 (默认1倍)')
@with_appcontext
def forge(scale):
    """
    [造物主指令] 重建数据库并填充演示数据。
    警告：这将清除数据库中的现有数据！
    """
    click.echo(click.style(f'⚡ Seeding Cornerstone demo data (scale: {scale}x)...', fg='cyan', bold=True))

    # 1. 清除旧数据
    db.drop_all()
    db.create_all()

    click.echo('Creating accounts...')
    admin = init_users(scale)

    click.echo('Registering sites and materials...')
    sites, materials = init_catalog(scale)

    click.echo('Replaying material movements (this may take a moment)...')
    init_movements(admin, sites, materials, scale)

    click.echo('Recording waste audits...')
    init_waste(admin, sites, materials, scale)

    click.echo('Evaluating alerts...')
    created = AlertEvaluator(db.session).evaluate_all()

    click.echo(click.style('✔ Demo data ready!', fg='green', bold=True))
    click.echo(f"Admin login: admin / password123 ({created} alerts raised)")


def init_users(scale=1):
    """管理员 + 若干只读用户"""
    accounts = AccountService(db.session)
    admin = accounts.register('admin', 'admin@cornerstone.local', 'password123',
                              'Site Administrator', role=User.ROLE_ADMIN)
    for i in range(3 * scale):
        accounts.register(
            username=f"{fake.user_name()}{i}",
            email=f"user{i}@cornerstone.local",
            password='password123',
            full_name=fake.name(),
        )
    return admin


def init_catalog(scale=1):
    """站点与材料目录"""
    today = datetime.utcnow().date()
    sites = []
    for i in range(3 * scale):
        start = today - timedelta(days=random.randint(30, 365))
        site = Site(
            name=fake.site_name(),
            location=f"{fake.city()}, {fake.state()}",
            status=random.choice([Site.STATUS_ACTIVE, Site.STATUS_ACTIVE, Site.STATUS_HALTED]),
            completion_percentage=round(random.uniform(5, 90), 1),
            start_date=start,
            estimated_completion=start + timedelta(days=random.randint(180, 720)),
        )
        db.session.add(site)
        sites.append(site)

    materials = []
    for name, category, unit, unit_cost in fake.construction_materials():
        material = Material(
            name=name,
            category=category,
            unit_of_measure=unit,
            unit_cost=unit_cost,
            reorder_threshold=float(random.choice([10, 20, 50, 100])),
        )
        db.session.add(material)
        materials.append(material)
    db.session.commit()
    click.echo(f'  ✓ {len(sites)} sites, {len(materials)} materials')
    return sites, materials


def init_movements(admin, sites, materials, scale=1):
    """通过事务引擎回放入库/出库/调拨，保证台账与流水一致"""
    engine = TransactionEngine(db.session)
    operator = Operator.from_user(admin)
    count = 0

    for site in sites:
        for material in random.sample(materials, k=min(len(materials), 8)):
            engine.record_in(site.id, material.id, random.randint(50, 400), operator, notes='Opening delivery')
            count += 1

    for _ in range(40 * scale):
        site = random.choice(sites)
        material = random.choice(materials)
        available = engine.ledger.get_quantity(site.id, material.id)
        if available <= 0:
            continue
        qty = min(round(random.uniform(1, max(available * 0.3, 1)), 2), available)
        if len(sites) > 1 and random.random() < 0.25:
            destination = random.choice([s for s in sites if s.id != site.id])
            engine.record_transfer(site.id, destination.id, material.id, qty, operator,
                                   notes='Rebalancing stock')
            count += 2
        elif qty > 0:
            engine.record_out(site.id, material.id, qty, operator, notes='Used on site')
            count += 1

    click.echo(f'  ✓ {count} transactions recorded')


def init_waste(admin, sites, materials, scale=1):
    """损耗审计记录"""
    waste = WasteService(db.session)
    operator = Operator.from_user(admin)
    today = datetime.utcnow().date()
    for _ in range(10 * scale):
        expected = round(random.uniform(10, 200), 2)
        actual = round(expected * random.uniform(0.9, 1.3), 2)
        waste.record(
            site_id=random.choice(sites).id,
            material_id=random.choice(materials).id,
            report_date=today - timedelta(days=random.randint(0, 60)),
            expected_quantity=expected,
            actual_quantity=actual,
            operator=operator,
            notes=random.choice([None, 'Spillage during mixing', 'Offcuts', 'Damaged in storage']),
        )
