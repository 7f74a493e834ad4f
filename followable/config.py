import json
import os

from dotenv import load_dotenv


load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_mapping(name: str) -> dict:
    raw = os.getenv(name, "").strip()
    if not raw:
        return {}
    value = json.loads(raw)
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be a JSON object")
    return {str(alias): str(canonical) for alias, canonical in value.items()}


class Config:
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///followable.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    FOLLOW_TABLE_NAME = os.getenv("FOLLOW_TABLE_NAME", "follows").strip() or "follows"
    FOLLOW_ALLOW_SELF_FOLLOW = _env_bool("FOLLOW_ALLOW_SELF_FOLLOW", False)

    # alias -> canonical type, e.g. {"user": "myapp.models.User"}
    FOLLOW_TYPE_ALIASES = _env_mapping("FOLLOW_TYPE_ALIASES")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
