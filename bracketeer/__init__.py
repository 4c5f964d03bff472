"""Initialize the Flask app and its extensions."""

import json
import os

import firebase_admin
from firebase_admin import credentials
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from .core.constants import STORE_FIRESTORE
from .extensions import mail
from .storage import init_stores
from .utils import truthy

CREDENTIALS_FILE = os.path.join(
    os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
)


def _service_account(app):
    """Return ``(credential, project_id)`` from a service account, if any.

    ``FIREBASE_CREDENTIALS_JSON`` wins over ``firebase_credentials.json``.
    """
    sources = []
    if os.environ.get("FIREBASE_CREDENTIALS_JSON"):
        sources.append(("FIREBASE_CREDENTIALS_JSON", os.environ["FIREBASE_CREDENTIALS_JSON"]))
    if os.path.exists(CREDENTIALS_FILE):
        with open(CREDENTIALS_FILE) as f:
            sources.append((CREDENTIALS_FILE, f.read()))

    for origin, raw in sources:
        try:
            info = json.loads(raw)
            return credentials.Certificate(info), info.get("project_id")
        except ValueError as e:
            app.logger.error(f"Ignoring Firebase credentials from {origin}: {e}")
    return None, None


def _init_firebase(app):
    """Initialize the Firebase Admin SDK for the Firestore document store."""
    if firebase_admin._apps:
        return

    cred, project_id = _service_account(app)
    if cred is None:
        try:
            cred = credentials.ApplicationDefault()
        except Exception as e:
            app.logger.error(f"No usable Firebase credentials: {e}")
            return
        project_id = os.environ.get("FIREBASE_PROJECT_ID")

    options = {"projectId": project_id} if project_id else None
    try:
        firebase_admin.initialize_app(cred, options)
    except ValueError:
        app.logger.info("Firebase app already initialized.")


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        DOCUMENT_STORE=os.environ.get("DOCUMENT_STORE") or STORE_FIRESTORE,
        DATA_DIR=os.environ.get("DATA_DIR") or os.path.join(app.instance_path, "data"),
        NOTIFY_RESULTS=truthy(os.environ.get("NOTIFY_RESULTS") or "true"),
        LOG_LEVEL=os.environ.get("LOG_LEVEL") or "INFO",
        MAIL_SERVER=os.environ.get("MAIL_SERVER") or "smtp.gmail.com",
        MAIL_PORT=int(os.environ.get("MAIL_PORT") or 587),
        MAIL_USE_TLS=truthy(os.environ.get("MAIL_USE_TLS") or "true"),
        MAIL_USE_SSL=truthy(os.environ.get("MAIL_USE_SSL") or "false"),
        MAIL_USERNAME=os.environ.get("MAIL_USERNAME"),
        MAIL_PASSWORD=os.environ.get("MAIL_PASSWORD"),
        MAIL_DEFAULT_SENDER=os.environ.get("MAIL_DEFAULT_SENDER")
        or "noreply@bracketeer.local",
    )

    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize Firebase Admin SDK only if not in testing mode
    if app.config["DOCUMENT_STORE"] == STORE_FIRESTORE and not app.config.get("TESTING"):
        _init_firebase(app)

    # Initialize extensions
    mail.init_app(app)
    init_stores(app)

    # Register blueprints
    from . import tournament as tournament_bp

    app.register_blueprint(tournament_bp.bp)

    from . import accounts as accounts_bp

    app.register_blueprint(accounts_bp.bp)

    from . import comments as comments_bp

    app.register_blueprint(comments_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.route("/")
    def index():
        """Report that the API is up."""
        return {"status": "Tournament API is running!"}

    @app.route("/health")
    def health_check():
        """Perform a simple health check."""
        return "OK", 200

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
