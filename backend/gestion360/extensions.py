# Overview: Flask extension instances for database and migrations, plus accessors
# for the ledger services attached to the running app.

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()

LEDGER_KEY = "gestion360.ledger"
STORE_KEY = "gestion360.store"
ENGINE_KEY = "gestion360.engine"
SESSIONS_KEY = "gestion360.sessions"


def get_ledger():
    return current_app.extensions[LEDGER_KEY]


def get_store():
    return current_app.extensions[STORE_KEY]


def get_engine():
    return current_app.extensions[ENGINE_KEY]


def get_sessions():
    return current_app.extensions[SESSIONS_KEY]
