# routes/auth.py
# Вход по коду доступа. Полноценная аутентификация живет во внешнем сервисе,
# здесь только то, что нужно API судейства, чтобы знать, кто делает запрос.

from functools import wraps

from flask import Blueprint, current_app, jsonify, request, session

from errors import AuthenticationError, ValidationError
from extensions import db
from models.user import User

auth_bp = Blueprint('auth', __name__)


def current_user():
    user_id = session.get('user_id')
    if user_id is None:
        return None
    return db.session.get(User, user_id)


def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if current_user() is None:
            session.clear()
            raise AuthenticationError('Для доступа необходимо войти в систему.')
        return f(*args, **kwargs)
    return decorated_function


@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    user_code = data.get('code')
    if not user_code or not isinstance(user_code, str):
        raise ValidationError('Пожалуйста, введите ваш код.', details={'field': 'code'})

    user = User.query.filter_by(code=user_code).first()
    if user is None:
        current_app.logger.warning('Неудачная попытка входа с кодом %s***', user_code[:2])
        raise AuthenticationError('Неверный код доступа.', code='invalid_code')

    session.clear()  # Очищаем старую сессию для безопасности
    session['user_id'] = user.id
    session['user_role'] = user.role
    return jsonify({'success': True, 'data': user.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'success': True})
