from flask_wtf import FlaskForm
from wtforms import StringField, SelectField, FloatField, DateField, SubmitField
from wtforms.validators import DataRequired, Length, NumberRange, Optional

from cornerstone.models import Site

class SiteForm(FlaskForm):
    """站点新增/编辑表单"""
    name = StringField('Site Name', validators=[DataRequired(), Length(max=128)])
    location = StringField('Location', validators=[DataRequired(), Length(max=255)])
    status = SelectField('Status', choices=[(s, s.replace('_', ' ').title()) for s in Site.STATUSES],
                         default=Site.STATUS_ACTIVE)
    completion_percentage = FloatField('Completion (%)', default=0, validators=[
        Optional(), NumberRange(min=0, max=100, message="Completion must be between 0 and 100.")
    ])
    start_date = DateField('Start Date', validators=[DataRequired()])
    estimated_completion = DateField('Estimated Completion', validators=[Optional()])
    submit = SubmitField('Save Site')
