from flask import render_template, request, flash, redirect, url_for, current_app
from flask_login import login_required

from cornerstone.extensions import db
from cornerstone.exceptions import CornerstoneException
from cornerstone.blueprints.inventory import inventory_bp
from cornerstone.blueprints.inventory.forms import TransactionForm
from cornerstone.repositories import SiteRepository, MaterialRepository, LedgerRepository, TransactionRepository
from cornerstone.services.inventory_service import TransactionEngine
from cornerstone.services.alert_service import AlertEvaluator
from cornerstone.utils.audit import log_action
from cornerstone.utils.context import current_operator
from cornerstone.utils.permissions import admin_required


def _selected_site(sites):
    """URL 参数 site_id 指定的站点，缺省取第一个"""
    site_id = request.args.get('site_id', type=int)
    for site in sites:
        if site.id == site_id:
            return site
    return sites[0] if sites else None


def _populate_choices(form, sites, materials, current_site):
    form.material_id.choices = [(m.id, f"{m.name} ({m.unit_of_measure})") for m in materials]
    form.destination_site_id.choices = [(0, 'Select destination...')] + [
        (s.id, s.name) for s in sites if current_site is None or s.id != current_site.id
    ]


@inventory_bp.route('/')
@login_required
def index():
    """
    站点库存页
    包含：站点切换、当前库存、最近流水、登记表单 (管理员)
    """
    sites = SiteRepository(db.session).list()
    materials = MaterialRepository(db.session).list()
    site = _selected_site(sites)

    form = TransactionForm()
    _populate_choices(form, sites, materials, site)
    if site is not None:
        form.site_id.data = site.id

    lines = []
    recent = []
    if site is not None:
        quantities = LedgerRepository(db.session).quantities_for_site(site.id)
        lines = [{
            'material': m,
            'quantity': quantities.get(m.id, 0.0),
            'value': quantities.get(m.id, 0.0) * float(m.unit_cost or 0),
            'low': quantities.get(m.id, 0.0) < float(m.reorder_threshold or 0),
        } for m in materials]
        recent = TransactionRepository(db.session).recent(site.id, limit=10)

    return render_template(
        'inventory/index.html',
        sites=sites,
        site=site,
        lines=lines,
        recent=recent,
        form=form,
    )


@inventory_bp.route('/transactions', methods=['POST'])
@login_required
@admin_required
def record_transaction():
    """登记入库 / 出库 / 调拨，成功后重新评估受影响库存行的预警"""
    sites = SiteRepository(db.session).list()
    materials = MaterialRepository(db.session).list()
    form = TransactionForm()
    site_id = request.form.get('site_id', type=int)
    site = next((s for s in sites if s.id == site_id), None)
    _populate_choices(form, sites, materials, site)

    if site is None:
        flash('Please select a site.', 'danger')
        return redirect(url_for('inventory.index'))

    if not form.validate_on_submit():
        for errors in form.errors.values():
            for error in errors:
                flash(error, 'danger')
        return redirect(url_for('inventory.index', site_id=site.id))

    operator = current_operator()
    action = form.transaction_type.data
    destination_id = form.destination_site_id.data or None
    try:
        records = TransactionEngine(db.session).record(
            action=action,
            site_id=site.id,
            material_id=form.material_id.data,
            quantity=form.quantity.data,
            operator=operator,
            notes=(form.notes.data or '').strip() or None,
            destination_site_id=destination_id,
        )
    except CornerstoneException as e:
        flash(e.message, 'danger')
        return redirect(url_for('inventory.index', site_id=site.id))

    # 预警重新评估失败不影响已提交的事务
    evaluator = AlertEvaluator(db.session)
    for txn in records:
        try:
            evaluator.evaluate_pair(txn.site_id, txn.material_id)
        except CornerstoneException as e:
            current_app.logger.warning("Alert evaluation skipped: %s", e.message)

    log_action('inventory', f'record_{action.lower()}', {
        'site_id': site.id,
        'material_id': form.material_id.data,
        'quantity': float(form.quantity.data),
        'destination_site_id': destination_id,
    }, operator=operator)

    flash(_success_message(action, records), 'success')
    return redirect(url_for('inventory.index', site_id=site.id))


def _success_message(action, records):
    txn = records[0]
    qty = f"{txn.quantity:.2f} {txn.material.unit_of_measure}"
    if action == 'IN':
        return f'Added {qty} of {txn.material.name}.'
    if action == 'OUT':
        return f'Removed {qty} of {txn.material.name}.'
    return f'Transferred {qty} of {txn.material.name} to {txn.related_site.name}.'


@inventory_bp.route('/history')
@login_required
def history():
    """站点完整流水 (分页)"""
    sites = SiteRepository(db.session).list()
    site = _selected_site(sites)
    pagination = None
    if site is not None:
        page = request.args.get('page', 1, type=int)
        per_page = current_app.config.get('TRANSACTIONS_PER_PAGE', 20)
        pagination = TransactionRepository(db.session).for_site(site.id).paginate(
            page=page, per_page=per_page, error_out=False
        )
    return render_template('inventory/history.html', sites=sites, site=site, pagination=pagination)
