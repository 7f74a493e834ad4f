import logging

from flask import Flask

from followable.config import Config
from followable.db import db
from followable.extensions.extensions import ma
from followable.registry.entity_registry import EntityRegistry


def create_app(config_overrides=None, registry=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # the edge model must be mapped before create_all
    from followable.models import follow_model

    if app.config["FOLLOW_TABLE_NAME"] != follow_model.FOLLOW_TABLE_NAME:
        raise ValueError(
            f"FOLLOW_TABLE_NAME is fixed at import time as "
            f"{follow_model.FOLLOW_TABLE_NAME!r}; set it in the environment instead"
        )

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    db.init_app(app)
    ma.init_app(app)
    app.extensions["followable"] = registry or EntityRegistry()

    with app.app_context():
        db.create_all()

    return app
