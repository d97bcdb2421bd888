from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, BooleanField, SelectField, SubmitField
from wtforms.validators import DataRequired, Length, Email, EqualTo, Regexp

class LoginForm(FlaskForm):
    """用户登录表单 (用户名或邮箱)"""
    login = StringField('Username or Email', validators=[
        DataRequired(message="Please enter your username or email.")
    ])
    password = PasswordField('Password', validators=[
        DataRequired(message="Please enter your password.")
    ])
    remember_me = BooleanField('Keep me signed in')
    submit = SubmitField('Sign In')

class RegisterForm(FlaskForm):
    """用户注册表单"""
    full_name = StringField('Full Name', validators=[
        DataRequired(), Length(max=128)
    ])
    username = StringField('Username', validators=[
        DataRequired(), Length(min=3, max=64),
        Regexp(r'^[A-Za-z0-9_.]+$', message="Letters, numbers, dots and underscores only.")
    ])
    email = StringField('Email', validators=[
        DataRequired(), Email(message="Invalid email address.")
    ])
    password = PasswordField('Password', validators=[
        DataRequired(), Length(min=8, message="Password must be at least 8 characters long.")
    ])
    confirm_password = PasswordField('Confirm Password', validators=[
        DataRequired(), EqualTo('password', message='Passwords do not match.')
    ])
    role = SelectField('Role', choices=[
        ('end_user', 'End User (view reports)'),
        ('admin', 'Administrator (manage inventory)'),
    ], default='end_user')
    submit = SubmitField('Create Account')

class DeleteAccountForm(FlaskForm):
    password = PasswordField('Current Password', validators=[DataRequired()])
    confirm_text = StringField('Type DELETE to confirm', validators=[DataRequired()])
    submit = SubmitField('Delete My Account')
