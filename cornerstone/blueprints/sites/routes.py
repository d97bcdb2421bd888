from flask import render_template, flash, redirect, url_for, abort
from flask_login import login_required

from cornerstone.extensions import db
from cornerstone.exceptions import CornerstoneException
from cornerstone.blueprints.sites import sites_bp
from cornerstone.blueprints.sites.forms import SiteForm
from cornerstone.repositories import SiteRepository
from cornerstone.services.catalog_service import CatalogService
from cornerstone.utils.audit import log_action
from cornerstone.utils.permissions import admin_required


@sites_bp.route('/')
@login_required
def index():
    """站点列表 (附材料种类数和库存总值)"""
    summaries = SiteRepository(db.session).summaries()
    return render_template('sites/index.html', summaries=summaries, form=SiteForm())


@sites_bp.route('/add', methods=['GET', 'POST'])
@login_required
@admin_required
def add():
    form = SiteForm()
    if form.validate_on_submit():
        try:
            site = CatalogService(db.session).create_site(
                name=form.name.data,
                location=form.location.data,
                start_date=form.start_date.data,
                status=form.status.data,
                completion_percentage=form.completion_percentage.data,
                estimated_completion=form.estimated_completion.data,
            )
        except CornerstoneException as e:
            flash(e.message, 'danger')
            return render_template('sites/form.html', form=form, site=None)
        log_action('sites', 'create', {'site_id': site.id, 'name': site.name})
        flash(f'Site "{site.name}" added.', 'success')
        return redirect(url_for('sites.index'))
    return render_template('sites/form.html', form=form, site=None)


@sites_bp.route('/<int:site_id>/edit', methods=['GET', 'POST'])
@login_required
@admin_required
def edit(site_id):
    site = SiteRepository(db.session).get(site_id)
    if site is None:
        abort(404)
    form = SiteForm(obj=site)
    if form.validate_on_submit():
        try:
            CatalogService(db.session).update_site(
                site_id,
                name=form.name.data,
                location=form.location.data,
                start_date=form.start_date.data,
                status=form.status.data,
                completion_percentage=form.completion_percentage.data,
                estimated_completion=form.estimated_completion.data,
            )
        except CornerstoneException as e:
            db.session.rollback()
            flash(e.message, 'danger')
            return render_template('sites/form.html', form=form, site=site)
        log_action('sites', 'update', {'site_id': site.id, 'status': site.status})
        flash(f'Site "{site.name}" updated.', 'success')
        return redirect(url_for('sites.index'))
    return render_template('sites/form.html', form=form, site=site)
