"""
Authentication forms using Flask-WTF.
Provides the staff login form with CSRF protection.
"""

from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, BooleanField
from wtforms.validators import DataRequired, Length


class LoginForm(FlaskForm):
    """Login form with username and password."""

    username = StringField('Пользователь', validators=[
        DataRequired(message='Укажите имя пользователя'),
        Length(max=80)
    ])

    password = PasswordField('Пароль', validators=[
        DataRequired(message='Укажите пароль')
    ])

    remember_me = BooleanField('Запомнить меня')
