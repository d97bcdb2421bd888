from flask import render_template, request, flash, redirect, url_for, abort
from flask_login import login_required

from cornerstone.extensions import db
from cornerstone.exceptions import ResourceNotFoundError
from cornerstone.blueprints.alerts import alerts_bp
from cornerstone.repositories import SiteRepository
from cornerstone.services.alert_service import AlertEvaluator
from cornerstone.utils.audit import log_action
from cornerstone.utils.permissions import admin_required


@alerts_bp.route('/')
@login_required
def index():
    """未解决预警列表"""
    site_id = request.args.get('site_id', type=int) or None
    evaluator = AlertEvaluator(db.session)
    return render_template(
        'alerts/index.html',
        alerts=evaluator.active_alerts(site_id),
        stats=evaluator.statistics(),
        sites=SiteRepository(db.session).list(),
        site_id=site_id,
    )


@alerts_bp.route('/<int:alert_id>/resolve', methods=['POST'])
@login_required
@admin_required
def resolve(alert_id):
    try:
        AlertEvaluator(db.session).resolve(alert_id)
    except ResourceNotFoundError:
        abort(404)
    log_action('alerts', 'resolve', {'alert_id': alert_id})
    flash('Alert resolved.', 'success')
    return redirect(url_for('alerts.index'))


@alerts_bp.route('/evaluate', methods=['POST'])
@login_required
@admin_required
def evaluate():
    """手动触发全量评估"""
    created = AlertEvaluator(db.session).evaluate_all()
    log_action('alerts', 'evaluate_all', {'created': created})
    flash(f'Alert evaluation complete: {created} new alert(s).', 'info')
    return redirect(url_for('alerts.index'))
