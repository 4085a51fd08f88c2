# Flask Application Factory
import logging
from pathlib import Path

from flask import Flask

from farmer_registry.auth import init_auth
from farmer_registry.config import Config
from farmer_registry.errors import register_error_handlers
from farmer_registry.logging_setup import configure_logging
from farmer_registry.models import db
from farmer_registry.services.users import seed_admin_if_needed
from farmer_registry.utils.storage import init_document_store

logger = logging.getLogger(__name__)

def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    init_auth(app)
    init_document_store(app)
    register_error_handlers(app)

    # Local SQLite databases live in instance/
    uri = app.config['SQLALCHEMY_DATABASE_URI']
    if uri.startswith('sqlite:///'):
        Path(uri[len('sqlite:///'):]).parent.mkdir(parents=True, exist_ok=True)

    # Create database tables and seed the initial admin
    with app.app_context():
        logger.info('Initializing database...')
        db.create_all()
        seed_admin_if_needed(app)

    # Register blueprints
    from farmer_registry.routes.auth import auth_bp
    from farmer_registry.routes.main import main_bp
    from farmer_registry.routes.farmers import farmers_bp
    from farmer_registry.routes.users import users_bp
    from farmer_registry.routes.export import export_bp
    from farmer_registry.routes.documents import documents_bp
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(main_bp)
    app.register_blueprint(farmers_bp, url_prefix='/api/farmers')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(export_bp, url_prefix='/api/export')
    app.register_blueprint(documents_bp, url_prefix='/api/documents')

    return app
