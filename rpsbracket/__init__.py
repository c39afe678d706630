"""Initialize the Flask app and its extensions."""

import json
import os

import click
import firebase_admin
from firebase_admin import credentials, firestore
from flask import Flask, current_app, g, session
from werkzeug.middleware.proxy_fix import ProxyFix

from .core.constants import GAME_CODE_ATTEMPTS, TOURNAMENTS_COLLECTION
from .extensions import csrf


def _env_flag(name, default="false"):
    return (os.environ.get(name) or default).lower() in ["true", "1", "t"]


def _init_firebase(app):
    """Initialize the Firebase Admin SDK from the first credentials found."""
    cred = None
    project_id = None

    # First, try to load from environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    # If both methods fail, fallback to default credentials
    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )
            return

    if not firebase_admin._apps:
        options = {"projectId": project_id} if project_id else None
        try:
            firebase_admin.initialize_app(cred, options)
        except ValueError:
            app.logger.info("Firebase app already initialized.")


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__)

    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        TOURNAMENTS_COLLECTION=os.environ.get("TOURNAMENTS_COLLECTION")
        or TOURNAMENTS_COLLECTION,
        FORFEIT_ON_LEAVE=_env_flag("FORFEIT_ON_LEAVE"),
        GAME_CODE_ATTEMPTS=int(
            os.environ.get("GAME_CODE_ATTEMPTS") or GAME_CODE_ATTEMPTS
        ),
        BRACKET_SEED=None,
    )

    if test_config:
        app.config.update(test_config)

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        _init_firebase(app)

    csrf.init_app(app)

    # Register blueprints
    from . import auth as auth_bp

    app.register_blueprint(auth_bp.bp)

    from . import tournament as tournament_bp

    app.register_blueprint(tournament_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.before_request
    def load_participant():
        """Expose the session's participant id as g.participant_id."""
        g.participant_id = session.get("participant_id")

    @app.cli.command("watch")
    @click.argument("code")
    def watch_command(code):
        """Keep resolving games and rounds of tournament CODE."""
        from .tournament.utils import normalize_game_code
        from .watchers import TournamentWatcher

        watcher = TournamentWatcher(
            firestore.client(),
            normalize_game_code(code),
            current_app.config["TOURNAMENTS_COLLECTION"],
        )
        watcher.start()
        click.echo(f"Watching {watcher.tournament_id}. Press Ctrl+C to stop.")
        try:
            while not watcher.detached.wait(timeout=1):
                pass
        except KeyboardInterrupt:
            pass
        finally:
            watcher.stop()
        click.echo("Stopped.")

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
