from flask_wtf import FlaskForm
from wtforms import StringField, FloatField, SubmitField
from wtforms.validators import DataRequired, Length, NumberRange, InputRequired

class MaterialForm(FlaskForm):
    """材料新增/编辑表单"""
    name = StringField('Material Name', validators=[DataRequired(), Length(max=128)])
    category = StringField('Category', validators=[DataRequired(), Length(max=64)],
                           render_kw={"list": "category-options"})
    unit_of_measure = StringField('Unit of Measure', validators=[DataRequired(), Length(max=32)],
                                  render_kw={"placeholder": "bag, ton, piece..."})
    unit_cost = FloatField('Unit Cost', default=0, validators=[
        InputRequired(), NumberRange(min=0, message="Unit cost cannot be negative.")
    ])
    reorder_threshold = FloatField('Reorder Threshold', default=0, validators=[
        InputRequired(), NumberRange(min=0, message="Reorder threshold cannot be negative.")
    ])
    submit = SubmitField('Save Material')
