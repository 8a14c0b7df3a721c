import logging

from flask import Flask
from flask.logging import default_handler
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_cors import CORS

db = SQLAlchemy()
migrate = Migrate()


def create_app(testing: bool=False, **overrides):
    app = Flask(__name__)
    from .config import Config, TestingConfig
    app.config.from_object(TestingConfig if testing else Config)
    app.config.update(overrides)
    app.json.sort_keys = False

    log = logging.getLogger("cutroom")
    log.setLevel(app.config["LOG_LEVEL"])
    if default_handler not in log.handlers:
        log.addHandler(default_handler)

    CORS(app)
    db.init_app(app)
    migrate.init_app(app, db)

    from . import models  # noqa: F401
    from .routes import bp as main_bp
    from .api import api as api_bp
    app.register_blueprint(main_bp)
    app.register_blueprint(api_bp, url_prefix="/api")

    return app
