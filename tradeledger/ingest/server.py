"""Flask application accepting trades over HTTP."""

import logging

from flask import Flask, jsonify, request
from flask_cors import CORS

from .trade_buffer import TradeBuffer

logger = logging.getLogger(__name__)

PREFLIGHT_MAX_AGE_SEC = 12 * 60 * 60


def create_app(trade_buffer: TradeBuffer, allowed_origin: str) -> Flask:
    """Create the ingestion app.

    Args:
        trade_buffer: Buffer that receives every accepted trade.
        allowed_origin: Single browser origin allowed by CORS.

    Returns:
        Configured Flask application.
    """
    app = Flask(__name__)

    CORS(
        app,
        origins=[allowed_origin],
        methods=["POST", "OPTIONS"],
        allow_headers=["Origin", "Content-Type"],
        expose_headers=["Content-Length"],
        supports_credentials=True,
        max_age=PREFLIGHT_MAX_AGE_SEC,
    )

    @app.post("/store-trade")
    def store_trade():
        trade = request.get_json(force=True, silent=True)
        if not isinstance(trade, dict):
            logger.warning("Rejected malformed trade payload")
            return jsonify({"error": "Invalid request"}), 400

        trade_buffer.append(trade)
        return jsonify({"message": "Trade stored"}), 200

    return app
