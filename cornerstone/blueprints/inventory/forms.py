from flask_wtf import FlaskForm
from wtforms import SelectField, DecimalField, TextAreaField, SubmitField, HiddenField
from wtforms.validators import DataRequired, InputRequired, Optional, Length

class TransactionForm(FlaskForm):
    """出入库/调拨表单"""
    site_id = HiddenField('Site', validators=[DataRequired()])
    transaction_type = SelectField('Transaction Type', choices=[
        ('IN', 'Stock In (+IN)'),
        ('OUT', 'Stock Out (-OUT)'),
        ('TRANSFER', 'Transfer to another site'),
    ], validators=[DataRequired()])
    material_id = SelectField('Material', coerce=int, validators=[DataRequired()])
    # 数量校验 (> 0) 由事务引擎统一处理
    quantity = DecimalField('Quantity', places=2, validators=[InputRequired(message="Quantity is required.")])
    destination_site_id = SelectField('Destination Site', coerce=int, validate_choice=False, validators=[Optional()])
    notes = TextAreaField('Notes', validators=[Optional(), Length(max=500)])
    submit = SubmitField('Record Transaction')
