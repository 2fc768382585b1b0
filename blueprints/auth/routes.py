"""
Authentication routes: login, logout, current user.
Staff sessions for the JSON API.
"""

from flask import Blueprint, current_app
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import generate_csrf

from blueprints.auth.forms import LoginForm
from models.user import User, get_user_by_username, update_last_login, check_password
from utils.api_response import api_success, api_error
from utils.messages import MESSAGES
from utils.permissions import get_capabilities

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Log a staff member in.

    Accepts form data or JSON {username, password, remember_me}.
    CSRF token comes from /auth/csrf-token (X-CSRFToken header).
    """
    form = LoginForm()

    if not form.validate_on_submit():
        return api_error(
            'Проверьте введенные данные', status=400,
            code='validation_error', details=form.errors
        )

    user_dict = get_user_by_username(form.username.data)

    if user_dict is None or not check_password(user_dict, form.password.data):
        current_app.logger.warning('Failed login for %s', form.username.data)
        return api_error(MESSAGES['invalid_credentials'], status=401, code='unauthorized')

    if not user_dict.get('active'):
        return api_error(MESSAGES['account_disabled'], status=403, code='forbidden')

    user = User(user_dict)
    login_user(user, remember=form.remember_me.data)
    update_last_login(user.id)

    current_app.logger.info('User %s logged in', user.username)

    return api_success(
        data={**user.to_dict(), 'capabilities': get_capabilities(user)},
        message=MESSAGES['login_success'].format(name=user.full_name or user.username)
    )


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """Logout current user."""
    logout_user()
    return api_success(message=MESSAGES['logout_success'])


@auth_bp.route('/me')
@login_required
def me():
    """Current staff user with capabilities."""
    return api_success(data={**current_user.to_dict(), 'capabilities': get_capabilities(current_user)})


@auth_bp.route('/csrf-token')
def csrf_token():
    """CSRF token for the login form."""
    return api_success(data={'csrfToken': generate_csrf()})
