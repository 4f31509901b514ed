import logging
import os

from dotenv import load_dotenv
from flasgger import Swagger
from flask import Flask, jsonify
from flask_cors import CORS
from models import db
from routes import register_routes
from utils.logging_config import configure_logging
from utils.pricing import UnknownTierError, load_catalog
from utils.validation import ValidationError
from utils.workflow import InvalidTransitionError


def create_app(config=None):
    # Load environment variables from a local .env file if present
    env_path = os.path.join(os.path.dirname(__file__), "..", ".env")
    load_dotenv(env_path)

    app = Flask(__name__)
    app.config["SWAGGER"] = {"title": "Partner Fulfillment API", "uiversion": 3}
    Swagger(app)

    frontend_origin = os.getenv("FRONTEND_URL", "*")
    origins = (
        [o.strip() for o in frontend_origin.split(",")] if frontend_origin else "*"
    )
    CORS(app, resources={r"/*": {"origins": origins}})

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL environment variable is not set")
    app.config["SQLALCHEMY_DATABASE_URI"] = database_url
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["PRICING_TIERS_FILE"] = os.getenv("PRICING_TIERS_FILE")
    if config:
        app.config.update(config)

    configure_logging(app)

    # The tier catalog is built once and injected; nothing reads a module global.
    catalog = app.config.get("TIER_CATALOG") or load_catalog(app.config["PRICING_TIERS_FILE"])
    app.extensions["tier_catalog"] = catalog

    db.init_app(app)
    with app.app_context():
        db.create_all()

    @app.errorhandler(UnknownTierError)
    def unknown_tier(exc):
        return (
            jsonify({"error": str(exc), "tier": exc.tier_id, "known_tiers": list(exc.known)}),
            400,
        )

    @app.errorhandler(ValidationError)
    def validation_error(exc):
        return jsonify({"error": str(exc)}), 400

    @app.errorhandler(InvalidTransitionError)
    def invalid_transition(exc):
        return jsonify({"error": str(exc), "status": exc.current}), 409

    @app.errorhandler(404)
    def not_found(exc):
        return jsonify({"error": "Not found"}), 404

    register_routes(app)
    return app


if __name__ == "__main__":
    app = create_app()
    app.logger.setLevel(logging.DEBUG)
    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "5001"))
    app.run(host=host, port=port)
