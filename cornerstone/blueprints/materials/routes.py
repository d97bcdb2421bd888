from flask import render_template, request, flash, redirect, url_for, abort
from flask_login import login_required

from cornerstone.extensions import db
from cornerstone.exceptions import CornerstoneException
from cornerstone.blueprints.materials import materials_bp
from cornerstone.blueprints.materials.forms import MaterialForm
from cornerstone.repositories import MaterialRepository
from cornerstone.services.catalog_service import CatalogService, material_categories
from cornerstone.utils.audit import log_action
from cornerstone.utils.permissions import admin_required


@materials_bp.route('/')
@login_required
def index():
    """材料目录 (可按分类筛选)"""
    category = request.args.get('category', '').strip() or None
    materials = MaterialRepository(db.session).list(category=category)
    return render_template(
        'materials/index.html',
        materials=materials,
        categories=material_categories(),
        category=category,
    )


@materials_bp.route('/add', methods=['GET', 'POST'])
@login_required
@admin_required
def add():
    form = MaterialForm()
    if form.validate_on_submit():
        try:
            material = CatalogService(db.session).create_material(
                name=form.name.data,
                category=form.category.data,
                unit_of_measure=form.unit_of_measure.data,
                unit_cost=form.unit_cost.data,
                reorder_threshold=form.reorder_threshold.data,
            )
        except CornerstoneException as e:
            flash(e.message, 'danger')
            return render_template('materials/form.html', form=form, material=None,
                                   categories=material_categories())
        log_action('materials', 'create', {'material_id': material.id, 'name': material.name})
        flash(f'Material "{material.name}" added.', 'success')
        return redirect(url_for('materials.index'))
    return render_template('materials/form.html', form=form, material=None,
                           categories=material_categories())


@materials_bp.route('/<int:material_id>/edit', methods=['GET', 'POST'])
@login_required
@admin_required
def edit(material_id):
    material = MaterialRepository(db.session).get(material_id)
    if material is None:
        abort(404)
    form = MaterialForm(obj=material)
    if form.validate_on_submit():
        try:
            CatalogService(db.session).update_material(
                material_id,
                name=form.name.data,
                category=form.category.data,
                unit_of_measure=form.unit_of_measure.data,
                unit_cost=form.unit_cost.data,
                reorder_threshold=form.reorder_threshold.data,
            )
        except CornerstoneException as e:
            db.session.rollback()
            flash(e.message, 'danger')
            return render_template('materials/form.html', form=form, material=material,
                                   categories=material_categories())
        log_action('materials', 'update', {'material_id': material.id})
        flash(f'Material "{material.name}" updated.', 'success')
        return redirect(url_for('materials.index'))
    return render_template('materials/form.html', form=form, material=material,
                           categories=material_categories())
