"""InTrack industrial visit attendance - Application Factory."""
import logging
import os
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)


def create_app(config_name: str = None) -> Flask:
    """Application factory pattern."""
    app = Flask(__name__)

    # Load configuration
    from intrack.config import get_config
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)

    # Configure CORS
    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]))

    # Setup logging
    setup_logging(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Setup database
    setup_database(app)

    # Add CLI commands
    register_commands(app)

    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'InTrack',
            'version': '1.0.0'
        })

    return app


def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from intrack.api.auth import auth_bp
    from intrack.api.visits import visits_bp
    from intrack.api.attendance import attendance_bp
    from intrack.api.feedback import feedback_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(visits_bp, url_prefix='/api/visits')
    app.register_blueprint(feedback_bp, url_prefix='/api/visits')
    app.register_blueprint(attendance_bp, url_prefix='/api/attendance')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from intrack.utils.helpers import handle_error, error_response
    from intrack.utils.validators import ValidationError
    from intrack.services.rotation_service import RotationConflictError
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(ValidationError)
    def validation_failed(error):
        return error_response(str(error), 400, data={'errors': error.errors})

    @app.errorhandler(RotationConflictError)
    def rotation_conflict(error):
        return error_response(str(error), 409)

    @app.errorhandler(404)
    def not_found(error):
        return handle_error(error, 404)

    @app.errorhandler(429)
    def rate_limited(error):
        return handle_error(error, 429)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return handle_error(error, 500)

    @app.errorhandler(HTTPException)
    def handle_exception(e):
        return handle_error(e, e.code)

    # JWT error handlers
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return error_response('Token has expired', 401)

    @jwt.invalid_token_loader
    def invalid_token_callback(reason):
        return error_response(f'Invalid token: {reason}', 401)

    @jwt.unauthorized_loader
    def missing_token_callback(reason):
        return error_response('Authorization token required', 401)


def setup_logging(app: Flask) -> None:
    """Setup application logging."""
    if not app.debug and not app.testing:
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = logging.FileHandler('logs/app.log')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

        app.logger.setLevel(logging.INFO)
        app.logger.info('InTrack startup')


def setup_database(app: Flask) -> None:
    """Import models so their tables are registered on the metadata."""
    with app.app_context():
        from intrack.models import (  # noqa: F401
            User, UserRole,
            Visit, QRToken,
            Attendance, AttendanceStatus, VerificationMethod,
            Feedback
        )


def register_commands(app: Flask) -> None:
    """Register CLI commands."""
    import click

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables')
    def init_db(drop):
        """Initialize the database."""
        if drop:
            db.drop_all()
            click.echo('Dropped all tables.')

        db.create_all()
        click.echo('Created all tables.')

    @app.cli.command('create-admin')
    def create_admin():
        """Create admin user."""
        email = click.prompt('Admin email')
        name = click.prompt('Admin name')
        password = click.prompt('Password', hide_input=True)

        from sqlalchemy.exc import SQLAlchemyError
        from intrack.models.user import User, UserRole
        from intrack.utils.validators import Validator

        email = email.lower().strip()
        if not Validator.validate_email(email):
            raise click.BadParameter('Invalid email format', param_hint='email')
        password_check = Validator.validate_password(password)
        if not password_check['is_valid']:
            raise click.BadParameter(password_check['errors'][0], param_hint='password')
        if User.query.filter_by(email=email).first():
            raise click.ClickException(f'User {email} already exists')

        admin = User(email=email, name=name.strip(), role=UserRole.ADMIN)
        admin.set_password(password)

        try:
            db.session.add(admin)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise click.ClickException(f'Error creating admin: {e}')

        app.logger.info(f'Admin account created: {email}')
        click.echo(f'Admin user created: {email}')
