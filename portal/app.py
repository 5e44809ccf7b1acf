# portal/app.py
from flask import Flask, jsonify
from werkzeug.exceptions import RequestEntityTooLarge

import logging

from ingest import config
from ingest.import_jobs import ImportJobRunner
from ingest.repository import SqliteMenuRepository
from ingest.events import EventBus

# ------------------------
# App & Config
# ------------------------
app = Flask(__name__)

app.config["SECRET_KEY"] = config.SECRET_KEY
app.config["MAX_CONTENT_LENGTH"] = config.MAX_UPLOAD_MB * 1024 * 1024
app.json.sort_keys = False

# Persistence + background imports (tests replace both with in-memory versions)
app.config["MENU_REPOSITORY"] = SqliteMenuRepository()
app.config["IMPORT_EVENTS"] = EventBus()
app.config["IMPORT_RUNNER"] = ImportJobRunner(
    app.config["MENU_REPOSITORY"],
    events=app.config["IMPORT_EVENTS"],
)

# ------------------------
# Errors
# ------------------------
@app.errorhandler(RequestEntityTooLarge)
def _too_large(_e):
    return jsonify({
        "ok": False,
        "error": f"File too large. Uploads are limited to {config.MAX_UPLOAD_MB} MB.",
    }), 413

@app.errorhandler(404)
def _not_found(_e):
    return jsonify({"ok": False, "error": "Not found"}), 404

# ------------------------
# Blueprint registration
# ------------------------
from portal.routes_imports import imports_bp
from routes.core import core_bp

app.register_blueprint(imports_bp)
app.register_blueprint(core_bp)

# ------------------------
# Run
# ------------------------
if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.run(host="0.0.0.0", port=5000, debug=True)
