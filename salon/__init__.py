# Import important modules and create app package
from flask import Flask, render_template
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_wtf import CSRFProtect
from dotenv import load_dotenv
import json
import logging
import os
from datetime import datetime

# Load environment variables
load_dotenv()

# Initialize extensions
db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
csrf = CSRFProtect()


def create_app(test_config=None):
    # Initialize app
    app = Flask(__name__)

    # Configure app
    app.config.from_mapping(
        SECRET_KEY=os.environ.get('SECRET_KEY', 'dev-key'),
        SQLALCHEMY_DATABASE_URI=os.environ.get('DATABASE_URL', 'sqlite:///salon_booking.db'),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        UPLOAD_FOLDER=os.environ.get('UPLOAD_FOLDER', os.path.join(app.instance_path, 'uploads')),
        MAX_CONTENT_LENGTH=int(os.environ.get('MAX_CONTENT_LENGTH', 8 * 1024 * 1024)),
        FIREBASE_CREDENTIALS=os.environ.get('FIREBASE_CREDENTIALS'),
        FIREBASE_WEB_CONFIG=json.loads(os.environ['FIREBASE_WEB_CONFIG']) if os.environ.get('FIREBASE_WEB_CONFIG') else None,
        FIREBASE_VAPID_KEY=os.environ.get('FIREBASE_VAPID_KEY'),
        PUSH_ICON=os.environ.get('PUSH_ICON', '/static/icons/icon-192x192.png'),
        SITE_URL=os.environ.get('SITE_URL', ''),
        POSTAL_LOOKUP_URL=os.environ.get('POSTAL_LOOKUP_URL', 'https://viacep.com.br/ws/{code}/json/'),
        POSTAL_LOOKUP_TIMEOUT=float(os.environ.get('POSTAL_LOOKUP_TIMEOUT', 5)),
        LOG_LEVEL=os.environ.get('LOG_LEVEL', 'INFO'),
        SLOT_MINUTES=30,
        APPOINTMENTS_PER_PAGE=10,
    )
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(app.config['LOG_LEVEL'])
    logging.getLogger('salon').setLevel(app.config['LOG_LEVEL'])

    # Initialize extensions with app
    db.init_app(app)
    login_manager.init_app(app)
    login_manager.login_view = 'auth.login'
    login_manager.login_message = 'Please log in to access this page.'
    migrate.init_app(app, db)
    csrf.init_app(app)

    # Push gateway is optional; without credentials promotions are stored but not pushed
    from salon.notifications.gateway import init_push_gateway
    init_push_gateway(app)

    # Register blueprints
    from salon.auth.routes import auth_bp
    from salon.booking.routes import booking_bp
    from salon.profile.routes import profile_bp
    from salon.chat.routes import chat_bp
    from salon.admin.routes import admin_bp
    from salon.main.routes import main_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(chat_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(main_bp)

    from salon.cli import register_commands
    register_commands(app)

    from salon.notifications.dispatch import connect_dispatch
    connect_dispatch()

    # Add context processors for template variables
    @app.context_processor
    def inject_now():
        return {'now': datetime.utcnow()}

    from salon.utils.theme import load_theme

    @app.context_processor
    def inject_theme():
        return {'theme': load_theme()}

    @app.errorhandler(404)
    def not_found(error):
        return render_template('errors/404.html'), 404

    @app.errorhandler(500)
    def server_error(error):
        db.session.rollback()
        return render_template('errors/500.html'), 500

    # Create database tables
    from salon import models  # noqa: F401
    with app.app_context():
        db.create_all()
        app.logger.info("Database tables created successfully")

    return app
