# backend/gestion360/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate, LEDGER_KEY, STORE_KEY, ENGINE_KEY, SESSIONS_KEY


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Ledger services: one ledger, one mirror, consumers hold the store they were given
    from .services.remote_ledger import LedgerError, RemoteLedger
    from .services.replicated_store import ReplicatedStore
    from .services.transaction_service import TransactionEffectEngine
    from .services.session_service import SessionRegistry

    ledger = RemoteLedger()
    store = ReplicatedStore(ledger)
    app.extensions[LEDGER_KEY] = ledger
    app.extensions[STORE_KEY] = store
    app.extensions[ENGINE_KEY] = TransactionEffectEngine(store)
    app.extensions[SESSIONS_KEY] = SessionRegistry(store)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.session import session_bp
    from .routes.products import products_bp
    from .routes.customers import customers_bp
    from .routes.transactions import transactions_bp
    from .routes.users import users_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(session_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(reports_bp)

    @app.before_request
    def sync_mirror():
        # First request opens the standing subscriptions; later ones poll for
        # writes made by other processes. An unreachable ledger leaves the
        # mirror loading and routes answer 503.
        try:
            if not store.started:
                store.start()
            elif app.config["LEDGER_POLL_ON_REQUEST"]:
                ledger.poll()
        except LedgerError:
            app.logger.exception("Ledger sync failed before %s %s", request.method, request.path)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
