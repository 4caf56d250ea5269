"""Static configuration for turnguard.

All user-editable settings (database, models, rewrite scope, logging) live in
a single JSON file for quick edits without touching Python. Secrets such as
OPENAI_API_KEY stay in the environment.
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.environ.get("TURNGUARD_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Where to store the SQLite database; relative paths resolve from the project root.
DB_PATH = _CONFIG.get("db_path", "turnguard.db")
if not os.path.isabs(DB_PATH):
    DB_PATH = os.path.join(PROJECT_ROOT, DB_PATH)

# Completion model settings. The timeout bounds the whole completion call.
_completion = _CONFIG.get("completion", {})
COMPLETION_MODEL = _completion.get("model", "gpt-4o-mini")
COMPLETION_TEMPERATURE = float(_completion.get("temperature", 0.8))
COMPLETION_TIMEOUT_SECONDS = float(_completion.get("timeout_seconds", 60))

_classifier = _CONFIG.get("classifier", {})
CLASSIFIER_MODEL = _classifier.get("model", COMPLETION_MODEL)

# Rewrite scope for rule substitutions:
# - "history": every message sent to the model
# - "current_message": only the inbound message
REWRITE_SCOPE = _CONFIG.get("rewrite", {}).get("scope", "history")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
