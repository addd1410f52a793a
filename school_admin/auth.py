import logging

from flask import Blueprint, current_app, jsonify, request, session

from school_admin import db
from school_admin.errors import InvalidCredentials, ValidationError
from school_admin.models import User
from school_admin.security import current_user, hash_password, login_required, verify_password

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


def _json_object():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


@auth_bp.route('/login', methods=['POST'])
def login():
    data = _json_object()
    username = data.get('username')
    password = data.get('password')
    if not username or not password:
        raise ValidationError('Username and password required')
    if not isinstance(username, str) or not isinstance(password, str):
        raise ValidationError('Username and password must be strings')

    user = User.query.filter_by(username=username).first()
    if not user or not verify_password(password, user.password_hash):
        logger.info("Failed login for '%s'", username)
        raise InvalidCredentials()

    session.clear()
    session['user'] = user.principal()
    session.permanent = True
    logger.info("User '%s' logged in as %s", user.username, user.role)
    return jsonify({'success': True, 'user': session['user']})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'success': True})


@auth_bp.route('/me', methods=['GET'])
def me():
    return jsonify(current_user())


@auth_bp.route('/change-password', methods=['POST'])
@login_required
def change_password():
    data = _json_object()
    current_pw = data.get('current_password') or ''
    new_pw = data.get('new_password') or ''
    if not current_pw or not new_pw:
        raise ValidationError('Current and new password are required')
    if not isinstance(current_pw, str) or not isinstance(new_pw, str):
        raise ValidationError('Passwords must be strings')
    min_len = int(current_app.config.get('PASSWORD_MIN_LENGTH', 6))
    if len(new_pw) < min_len:
        raise ValidationError(f'Password must be at least {min_len} characters')

    user = db.session.get(User, current_user()['id'])
    if not user or not verify_password(current_pw, user.password_hash):
        raise InvalidCredentials('Current password is incorrect')
    user.password_hash = hash_password(new_pw)
    db.session.commit()
    logger.info("User '%s' changed password", user.username)
    return jsonify({'success': True})
