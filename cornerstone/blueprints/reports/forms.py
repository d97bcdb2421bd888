from datetime import date

from flask_wtf import FlaskForm
from wtforms import SelectField, FloatField, DateField, TextAreaField, SubmitField
from wtforms.validators import DataRequired, InputRequired, NumberRange, Optional, Length

class WasteReportForm(FlaskForm):
    """损耗审计登记表单 (预计用量 vs 实际用量)"""
    site_id = SelectField('Site', coerce=int, validators=[DataRequired()])
    material_id = SelectField('Material', coerce=int, validators=[DataRequired()])
    report_date = DateField('Audit Date', default=date.today, validators=[DataRequired()])
    expected_quantity = FloatField('Expected Quantity', validators=[
        InputRequired(), NumberRange(min=0, message="Quantities cannot be negative.")
    ])
    actual_quantity = FloatField('Actual Quantity', validators=[
        InputRequired(), NumberRange(min=0, message="Quantities cannot be negative.")
    ])
    notes = TextAreaField('Notes', validators=[Optional(), Length(max=500)])
    submit = SubmitField('Save Audit')
