import json
import os
from typing import Any

MIN_RESPONSES = 5
DEFAULT_MASTER_LANGUAGE = os.getenv("DEFAULT_MASTER_LANGUAGE", "en").strip().lower() or "en"
OPTION_LANGUAGE_FALLBACKS = ("en", "de")
FREE_TEXT_DEFAULT_MAX_LENGTH = 500

ADMIN_TOKEN = os.getenv("ADMIN_TOKEN", "")
JWT_SECRET = os.getenv("JWT_SECRET", "")
DEV_MODE = os.getenv("DEV_MODE", "false").lower() == "true"
ACCESS_TOKEN_TTL_MINUTES = int(os.getenv("ACCESS_TOKEN_TTL_MINUTES", "60"))

EXPORT_FREE_TEXT_LIMIT = int(os.getenv("EXPORT_FREE_TEXT_LIMIT", "10"))
PPTX_AUTHOR = os.getenv("PPTX_AUTHOR", "OrgView Analytics")
PPTX_COMPANY = os.getenv("PPTX_COMPANY", "OrgView")

DEFAULT_AGGREGATOR_SETTINGS: dict[str, Any] = {
    "FLOWER_SCALE_MIN": float(os.getenv("FLOWER_SCALE_MIN", "1")),
    "FLOWER_SCALE_MAX": float(os.getenv("FLOWER_SCALE_MAX", "5")),
    "DEFAULT_QUESTION_WEIGHT": float(os.getenv("DEFAULT_QUESTION_WEIGHT", "1.0")),
}

if os.getenv("AGGREGATOR_WEIGHTS_JSON"):
    try:
        DEFAULT_AGGREGATOR_SETTINGS.update(json.loads(os.getenv("AGGREGATOR_WEIGHTS_JSON", "{}")))
    except json.JSONDecodeError:
        pass

RL_REPORT_GENERATE_LIMIT = int(os.getenv("RL_REPORT_GENERATE_LIMIT", "30"))
RL_EXPORT_LIMIT = int(os.getenv("RL_EXPORT_LIMIT", "20"))
RL_WINDOW_SECONDS = int(os.getenv("RL_WINDOW_SECONDS", "60"))
