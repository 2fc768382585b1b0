"""
Drewno - Resort Booking & Availability Engine
Flask application factory and initialization
"""

import os
import click
import logging
from flask import Flask, g
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Import configuration
from config import config

# Import extensions
from extensions import login_manager, csrf

# Import database functions
from database import close_db, init_db

from models.exceptions import BookingError
from utils.api_response import api_success, api_error, booking_error_response
from utils.messages import MESSAGES


def create_app(config_name=None):
    """
    Application factory for Flask app.

    Args:
        config_name: Configuration name ('development', 'production', 'test')

    Returns:
        Flask application instance
    """
    # Determine config
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    # Create Flask app
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config[config_name])
    if config_name == 'production':
        config[config_name].validate()

    # Initialize extensions
    initialize_extensions(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_cli_commands(app)

    # Register teardown handlers
    register_teardown_handlers(app)

    # Configure logging
    configure_logging(app)

    return app


def initialize_extensions(app):
    """Initialize Flask extensions."""
    # Initialize Flask-Login
    login_manager.init_app(app)
    # Initialize CSRF Protection
    csrf.init_app(app)


def register_blueprints(app):
    """Register Flask blueprints."""
    # Import blueprints
    from blueprints.auth.routes import auth_bp
    from blueprints.api import api_bp

    # JSON API is called by the booking pages without a form token
    csrf.exempt(api_bp)

    # Register blueprints
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(api_bp, url_prefix='/api')

    @app.route('/')
    def index():
        """Service info."""
        return api_success(data={
            'name': app.config.get('APP_NAME', 'Drewno'),
            'version': app.config.get('APP_VERSION', '1.0.0'),
        })


def register_error_handlers(app):
    """Register error handlers."""

    @app.errorhandler(BookingError)
    def booking_error(error):
        """Typed booking failures carry their own status and code."""
        return booking_error_response(error)

    @app.errorhandler(404)
    def not_found_error(error):
        """Handle 404 errors."""
        return api_error(MESSAGES['not_found'], status=404, code='not_found')

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        """Handle 405 errors."""
        return api_error(str(error.description), status=405, code='method_not_allowed')

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        # Rollback database on error
        db = g.get('db')
        if db:
            db.rollback()
        app.logger.error('Unhandled error: %s', getattr(error, 'original_exception', error),
                         exc_info=getattr(error, 'original_exception', None))
        return api_error(MESSAGES['server_error'], status=500, code='server_error')


def register_cli_commands(app):
    """Register Flask CLI commands."""

    @app.cli.command('init-db')
    def init_db_command():
        """Initialize database with schema and seed data."""
        click.echo('Initializing database...')
        with app.app_context():
            init_db()
        click.echo('Database initialized successfully!')

    @app.cli.command('create-user')
    @click.argument('username')
    @click.option('--role', default='ADMIN',
                  type=click.Choice(['SUPER_ADMIN', 'OWNER', 'ADMIN', 'INSTRUCTOR']))
    @click.option('--full-name', default=None)
    @click.password_option()
    def create_user_command(username, role, full_name, password):
        """Create a new staff user."""
        from models.user import create_user

        with app.app_context():
            try:
                user_id = create_user(
                    username=username,
                    password=password,
                    full_name=full_name,
                    role=role
                )
                click.echo(f'User created successfully! ID: {user_id}')
            except ValueError as e:
                click.echo(f'Error creating user: {str(e)}', err=True)

    @app.cli.command('expire-holds')
    def expire_holds_command():
        """Expire guest requests whose call window elapsed (run from cron)."""
        from models.booking_state import expire_stale_bookings

        with app.app_context():
            expired = expire_stale_bookings()
        click.echo(f'Expired {len(expired)} booking(s)')
        for ticket_number in expired:
            click.echo(f'  {ticket_number}')


def register_teardown_handlers(app):
    """Register teardown handlers."""

    @app.teardown_appcontext
    def teardown_db(error):
        """Close database connection at end of request."""
        close_db(error)


def configure_logging(app):
    """Configure application logging."""
    if not app.debug and not app.testing:
        # Production logging
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = logging.FileHandler('logs/drewno.log')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)
        # Model modules log through the root logger
        logging.getLogger().addHandler(file_handler)
        logging.getLogger().setLevel(logging.INFO)

        app.logger.setLevel(logging.INFO)
        app.logger.info('Drewno startup')
    else:
        # Development logging
        app.logger.setLevel(logging.DEBUG)


# Create application instance for development server
if __name__ == '__main__':
    app = create_app()
    # host='0.0.0.0' allows access from other devices on the network
    app.run(host='0.0.0.0', debug=True)
