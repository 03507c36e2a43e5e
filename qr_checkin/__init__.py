"""QR Check-in Service - Application Factory."""
import logging
import os
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from sqlalchemy import event

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per day", "50 per hour"]
)

def create_app(config_name: str = None, config_overrides: dict = None) -> Flask:
    """Application factory pattern."""
    app = Flask(__name__)

    # Load configuration
    from config import get_config
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    if config_overrides:
        app.config.update(config_overrides)

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

    # Add health check
    @app.route('/health')
    @limiter.exempt
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'QR Check-in Service',
            'version': '1.0.0'
        })

    return app

def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from qr_checkin.api.sessions import sessions_bp
    from qr_checkin.api.checkin import checkin_bp
    from qr_checkin.api.settings import settings_bp

    app.register_blueprint(sessions_bp, url_prefix='/api/sessions')
    app.register_blueprint(checkin_bp, url_prefix='/api/checkin')
    app.register_blueprint(settings_bp, url_prefix='/api/settings')

def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from qr_checkin.errors import AttendanceError
    from qr_checkin.utils.helpers import handle_error, error_response
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(AttendanceError)
    def attendance_error(error):
        return error_response(error.message, error.status_code, kind=error.client_kind)

    @app.errorhandler(HTTPException)
    def handle_exception(e):
        return handle_error(e.description, e.code)

    @app.errorhandler(Exception)
    def unexpected_error(error):
        db.session.rollback()
        app.logger.exception('Unhandled error: %s', error)
        return error_response('An unexpected error occurred', 500)

    # JWT error handlers
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return error_response('Token has expired', 401, kind='unauthorized')

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return error_response('Invalid token', 401, kind='unauthorized')

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return error_response('Authorization token required', 401, kind='unauthorized')

def setup_logging(app: Flask) -> None:
    """Setup application logging."""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    app.logger.setLevel(level)

    if not app.debug and not app.testing:
        log_file = app.config.get('LOG_FILE', 'logs/app.log')
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(level)
        app.logger.addHandler(file_handler)

        app.logger.info('QR Check-in Service startup')

def setup_database(app: Flask) -> None:
    """Setup database connections."""
    with app.app_context():
        # Import all models
        from qr_checkin.models import (
            User, UserRole, SchoolClass, ClassEnrollment,
            QRSession, SessionStatus, QRCheckIn, AttendanceRecord,
            SchoolSettings, RateLimitEntry
        )

        if db.engine.dialect.name == 'sqlite':
            enable_sqlite_immediate_transactions(db.engine)

def enable_sqlite_immediate_transactions(engine) -> None:
    """Make every SQLite transaction take the write lock up front.

    pysqlite defers BEGIN until the first write, so two check-ins that both
    read before writing fail with "database is locked" instead of waiting on
    the busy timeout.
    """
    @event.listens_for(engine, 'connect')
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, 'begin')
    def _begin_immediate(conn):
        conn.exec_driver_sql('BEGIN IMMEDIATE')

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

    @app.cli.command('create-user')
    @click.option('--email', prompt='Email')
    @click.option('--name', prompt='Name')
    @click.option('--role', type=click.Choice(['student', 'teacher', 'admin']), default='student')
    def create_user(email, name, role):
        """Create a user and print an access token for it."""
        from flask_jwt_extended import create_access_token
        from qr_checkin.models.user import User, UserRole

        user = User(email=email.lower().strip(), name=name, role=UserRole(role))
        try:
            user.save()
        except Exception as e:
            db.session.rollback()
            click.echo(f'Error creating user: {str(e)}')
            return

        click.echo(f'Created {role} {user.email} (id={user.id})')
        click.echo(f'Access token: {create_access_token(identity=str(user.id))}')

    @app.cli.command('clean-rate-limits')
    @click.option('--older-than', type=int, default=None,
                  help='Delete entries older than this many seconds')
    def clean_rate_limits(older_than):
        """Delete rate-limit entries that fell out of every window."""
        from qr_checkin.services.rate_limiter import RateLimiter

        window = older_than or app.config['CHECKIN_RATE_WINDOW_SECONDS']
        removed = RateLimiter().purge(window)
        click.echo(f'Removed {removed} rate-limit entries.')

    @app.cli.command('set-school-location')
    @click.option('--lat', type=float, required=True)
    @click.option('--lng', type=float, required=True)
    @click.option('--radius', type=float, required=True, help='Radius in meters')
    @click.option('--name', default=None)
    @click.option('--allow-out-of-range', is_flag=True)
    def set_school_location(lat, lng, radius, name, allow_out_of_range):
        """Store the school geofence."""
        from qr_checkin.errors import ValidationError
        from qr_checkin.services.school_location_service import SchoolLocationService

        try:
            location = SchoolLocationService.from_app(app).update_location(
                latitude=lat,
                longitude=lng,
                radius_meters=radius,
                allow_out_of_range=allow_out_of_range,
                name=name
            )
        except ValidationError as e:
            raise click.BadParameter(e.message)

        click.echo(f'School location set to {location.latitude}, {location.longitude} '
                   f'(radius {location.radius_meters:.0f}m)')
