from datetime import date, datetime, timedelta

from flask import render_template, request, flash, redirect, url_for, send_file
from flask_login import login_required

from cornerstone.extensions import db
from cornerstone.exceptions import CornerstoneException, ValidationError
from cornerstone.blueprints.reports import reports_bp
from cornerstone.blueprints.reports.forms import WasteReportForm
from cornerstone.repositories import SiteRepository, MaterialRepository
from cornerstone.services.report_service import ReportService
from cornerstone.services.waste_service import WasteService
from cornerstone.services.export_service import export_service
from cornerstone.utils.audit import log_action, audit_log
from cornerstone.utils.context import current_operator
from cornerstone.utils.permissions import admin_required


def _parse_date(value, default):
    if not value:
        return default
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(f'Invalid date: {value}. Use YYYY-MM-DD.')


def _report_args():
    """从 URL 参数读取报表条件 (默认：成本报表，全部站点，近 30 天)"""
    report_type = request.args.get('report_type', 'cost')
    site_id = request.args.get('site_id', type=int) or None
    today = date.today()
    date_from = _parse_date(request.args.get('date_from'), today - timedelta(days=30))
    date_to = _parse_date(request.args.get('date_to'), today)
    if date_from > date_to:
        raise ValidationError('Start date must be on or before end date.')
    return report_type, site_id, date_from, date_to


@reports_bp.route('/')
@login_required
def index():
    """报表中心 (成本 / 损耗差异 / 补货)"""
    sites = SiteRepository(db.session).list()
    service = ReportService(db.session)
    try:
        report_type, site_id, date_from, date_to = _report_args()
        report = service.generate(report_type, site_id, date_from, date_to)
    except CornerstoneException as e:
        flash(e.message, 'danger')
        return redirect(url_for('reports.index'))

    return render_template(
        'reports/index.html',
        report_types=service.REPORT_TYPES,
        report_type=report_type,
        report=report,
        sites=sites,
        site_id=site_id,
        date_from=date_from,
        date_to=date_to,
        variance_threshold=service.variance_threshold,
    )


@reports_bp.route('/export/<fmt>')
@login_required
@audit_log('reports', 'export')
def export(fmt):
    """导出当前报表：CSV 或 Excel"""
    if fmt not in ('csv', 'xlsx'):
        flash('Unsupported export format.', 'danger')
        return redirect(url_for('reports.index'))

    service = ReportService(db.session)
    try:
        report_type, site_id, date_from, date_to = _report_args()
        report = service.generate(report_type, site_id, date_from, date_to)
    except CornerstoneException as e:
        flash(e.message, 'danger')
        return redirect(url_for('reports.index'))

    columns = service.COLUMNS[report_type]
    filename = f"{report_type}_report_{date.today().isoformat()}.{fmt}"
    if fmt == 'csv':
        output = export_service.export_to_csv(report['rows'], columns)
        mimetype = 'text/csv'
    else:
        output = export_service.export_to_excel(
            report['rows'], columns,
            sheet_name=report_type.title(),
            title=service.REPORT_TYPES[report_type]['name'],
        )
        mimetype = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

    return send_file(output, mimetype=mimetype, as_attachment=True, download_name=filename)


@reports_bp.route('/waste/new', methods=['GET', 'POST'])
@login_required
@admin_required
def new_waste_report():
    """登记损耗审计"""
    form = WasteReportForm()
    form.site_id.choices = [(s.id, s.name) for s in SiteRepository(db.session).list()]
    form.material_id.choices = [(m.id, f"{m.name} ({m.unit_of_measure})")
                                for m in MaterialRepository(db.session).list()]

    if form.validate_on_submit():
        operator = current_operator()
        try:
            report = WasteService(db.session).record(
                site_id=form.site_id.data,
                material_id=form.material_id.data,
                report_date=form.report_date.data,
                expected_quantity=form.expected_quantity.data,
                actual_quantity=form.actual_quantity.data,
                operator=operator,
                notes=(form.notes.data or '').strip() or None,
            )
        except CornerstoneException as e:
            flash(e.message, 'danger')
            return render_template('reports/waste_form.html', form=form)
        log_action('reports', 'record_waste', {'waste_report_id': report.id}, operator=operator)
        flash(f'Audit saved: variance {report.variance:.2f} ({report.variance_percentage:.2f}%).', 'success')
        return redirect(url_for('reports.index', report_type='waste'))

    return render_template('reports/waste_form.html', form=form)
