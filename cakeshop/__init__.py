import logging
import sys

from flask import Flask, jsonify

from .config import Config
from .extensions import db, jwt, cors, migrate
from .errors import register_error_handlers

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logger = logging.getLogger("cakeshop")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)
    config_object = config_object or Config
    app.config.from_object(config_object)
    config_object.init_app(app)
    configure_logging(app)

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)
    cors.init_app(app, resources={r"/*": {"origins": "*"}})
    migrate.init_app(app, db)

    # Collaborators; tests swap these out
    from .services.query_service import build_dispatcher
    from .services.sentiment_service import LexiconSentimentClassifier
    app.extensions["query_dispatcher"] = build_dispatcher(app.config)
    app.extensions["sentiment_classifier"] = LexiconSentimentClassifier()

    register_error_handlers(app)

    # Register blueprints
    from .auth import bp as auth_bp; app.register_blueprint(auth_bp)
    from .category import bp as category_bp; app.register_blueprint(category_bp)
    from .product import bp as product_bp; app.register_blueprint(product_bp)
    from .coupon import bp as coupon_bp; app.register_blueprint(coupon_bp)
    from .order import bp as order_bp; app.register_blueprint(order_bp)
    from .notification import bp as notification_bp; app.register_blueprint(notification_bp)
    from .assistant import bp as assistant_bp; app.register_blueprint(assistant_bp)

    from .cli import register_cli
    register_cli(app)

    @app.get("/")
    def health():
        return jsonify(ok=True, msg="API running")

    with app.app_context():
        db.create_all()

    logging.getLogger("cakeshop").debug("blueprints: %s", sorted(app.blueprints))
    return app
