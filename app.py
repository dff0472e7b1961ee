# app.py
# Основной файл Flask-приложения с использованием паттерна Application Factory

import logging
import os

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from config import Config
from errors import JudgingError
from extensions import db, migrate

# Важно импортировать модели здесь, чтобы Alembic (Migrate) мог их видеть
from models import User, Hackathon, Project, ScoringCriterion, JudgeAssignment, Score  # noqa: F401


def register_error_handlers(app):
    @app.errorhandler(JudgingError)
    def handle_judging_error(error):
        if error.status_code >= 500:
            app.logger.error('%s: %s', error.code, error.message)
        else:
            app.logger.info('Запрос отклонен (%s): %s', error.code, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'success': False, 'error': error.name.lower().replace(' ', '_'),
                        'message': error.description}), error.code


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    # Каталог для файла SQLite по умолчанию
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite:///'):
        os.makedirs(os.path.join(Config.BASE_DIR, 'instance'), exist_ok=True)

    db.init_app(app)
    migrate.init_app(app, db)

    # --- Регистрируем наши Blueprints (маршруты) ---
    from routes.auth import auth_bp
    from routes.judging import judging_bp
    from routes.admin import admin_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(judging_bp)
    app.register_blueprint(admin_bp)

    register_error_handlers(app)
    return app
