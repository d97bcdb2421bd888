from flask import render_template
from flask_login import login_required

from cornerstone.extensions import db
from cornerstone.blueprints.main import main_bp
from cornerstone.services.report_service import ReportService
from cornerstone.services.alert_service import AlertEvaluator


@main_bp.route('/')
@login_required
def index():
    """仪表盘：站点概况、库存总值、按站点的库存明细、最新预警"""
    summary = ReportService(db.session).dashboard_summary()
    alerts = AlertEvaluator(db.session)
    return render_template(
        'main/dashboard.html',
        summary=summary,
        alert_stats=alerts.statistics(),
        recent_alerts=alerts.active_alerts_query().limit(5).all(),
    )
