from __future__ import annotations

import logging

from flask import Flask, jsonify
from flask_cors import CORS

from sheetgen import config
from sheetgen.errors import SheetError
from sheetgen.routes_icongrid import bp as icongrid_bp
from sheetgen.routes_spritesheet import bp as spritesheet_bp


def create_app() -> Flask:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.MAX_CONTENT_LENGTH
    CORS(app)

    app.register_blueprint(spritesheet_bp)
    app.register_blueprint(icongrid_bp)

    @app.errorhandler(SheetError)
    def sheet_error(exc: SheetError):
        return jsonify({"errors": exc.messages}), exc.status_code

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"})

    return app
