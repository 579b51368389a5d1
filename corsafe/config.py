# ============================================================================
# COR-SAFE - Configuration Management
# ============================================================================
# Typed configuration with defaults, environment overrides (CORSAFE_<KEY>)
# and optional persisted overrides in the compliance_config table.
# Lookup order: set() / table value > environment > DEFAULT_CONFIG.
# ============================================================================

import json
import os
import sqlite3
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

ENV_PREFIX = "CORSAFE_"

# key: (default, value_type, category)
DEFAULT_CONFIG = {
    # General
    "db_path": ("corsafe.db", "string", "general"),
    "log_level": ("INFO", "string", "general"),
    "seed_default_templates": (True, "bool", "general"),

    # Finding due-date offsets (days from creation)
    "due_days_critical": (1, "int", "findings"),
    "due_days_high": (7, "int", "findings"),
    "due_days_medium": (30, "int", "findings"),
    "due_days_low": (90, "int", "findings"),

    # COR scoring
    "weight_on_time_completion": (0.4, "float", "scoring"),
    "weight_pass_rate": (0.3, "float", "scoring"),
    "weight_correction_on_time": (0.3, "float", "scoring"),
    "completion_grace_days": (0, "int", "scoring"),
    "pass_rate_threshold": (0.8, "float", "scoring"),
    "correction_rate_threshold": (0.8, "float", "scoring"),
    "activity_window_days": (30, "int", "scoring"),
}


class ComplianceConfig:
    """
    Configuration manager for the compliance engine.

    Each instance keeps its own cache, so tests and multiple hosts never
    share state. Pass db_path=None to skip persistence entirely.
    """

    def __init__(self, db_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None,
                 environ: Optional[Dict[str, str]] = None):
        self.db_path = str(db_path) if db_path else None
        self._environ = os.environ if environ is None else environ
        self._cache: Dict[str, Any] = {}
        self._cache_loaded = False
        self._overrides = dict(overrides or {})
        if self.db_path:
            self._init_table()

    def _get_conn(self):
        conn = sqlite3.connect(self.db_path, timeout=30, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_table(self):
        conn = self._get_conn()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS compliance_config (
                key TEXT PRIMARY KEY,
                value TEXT,
                value_type TEXT DEFAULT 'string',
                category TEXT DEFAULT 'general',
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_by TEXT
            )
        """)
        conn.commit()
        conn.close()

    def _load_cache(self):
        """Load defaults, then environment, then stored values."""
        if self._cache_loaded:
            return

        for key, (default, vtype, category) in DEFAULT_CONFIG.items():
            self._cache[key] = default
            env_value = self._environ.get(ENV_PREFIX + key.upper())
            if env_value is not None:
                self._cache[key] = self._cast_value(env_value, vtype)

        if self.db_path:
            conn = self._get_conn()
            rows = conn.execute("SELECT key, value, value_type FROM compliance_config").fetchall()
            conn.close()
            for row in rows:
                self._cache[row["key"]] = self._cast_value(row["value"], row["value_type"])

        self._cache.update(self._overrides)
        self._cache_loaded = True

    @staticmethod
    def _cast_value(value: str, value_type: str) -> Any:
        """Cast string value to appropriate type."""
        if value is None:
            return None
        if value_type == "bool":
            return value.lower() in ("true", "1", "yes", "on")
        if value_type == "int":
            try:
                return int(value)
            except ValueError:
                logger.warning(f"[Config] could not cast {value!r} to int")
                return 0
        if value_type == "float":
            try:
                return float(value)
            except ValueError:
                logger.warning(f"[Config] could not cast {value!r} to float")
                return 0.0
        if value_type == "json":
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                logger.warning(f"[Config] invalid json value {value!r}")
                return {}
        return value

    @staticmethod
    def _serialize_value(value: Any, value_type: str) -> str:
        """Serialize value to string for storage."""
        if value is None:
            return ""
        if value_type == "bool":
            return "true" if value else "false"
        if value_type == "json":
            return json.dumps(value)
        return str(value)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        self._load_cache()
        return self._cache.get(key, default)

    def set(self, key: str, value: Any, value_type: str = None, user: str = None) -> None:
        """Set a configuration value, persisting it when a table is configured."""
        self._load_cache()

        category = "general"
        if value_type is None:
            if key in DEFAULT_CONFIG:
                _, value_type, category = DEFAULT_CONFIG[key]
            elif isinstance(value, bool):
                value_type = "bool"
            elif isinstance(value, int):
                value_type = "int"
            elif isinstance(value, float):
                value_type = "float"
            elif isinstance(value, (dict, list)):
                value_type = "json"
            else:
                value_type = "string"

        old_value = self._cache.get(key)

        if self.db_path:
            conn = self._get_conn()
            conn.execute(
                """INSERT INTO compliance_config (key, value, value_type, category, updated_by)
                   VALUES (?, ?, ?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET
                   value = excluded.value,
                   value_type = excluded.value_type,
                   category = excluded.category,
                   updated_at = CURRENT_TIMESTAMP,
                   updated_by = excluded.updated_by""",
                (key, self._serialize_value(value, value_type), value_type, category, user),
            )
            conn.commit()
            conn.close()

        self._cache[key] = value
        if old_value != value:
            logger.info(f"[Config] {key} changed {old_value!r} -> {value!r} by {user or 'system'}")

    def get_all(self, category: str = None) -> Dict[str, Any]:
        """Get all configuration values, optionally filtered by category."""
        self._load_cache()
        if category is None:
            return dict(self._cache)
        return {
            key: self._cache.get(key, default)
            for key, (default, vtype, cat) in DEFAULT_CONFIG.items()
            if cat == category
        }

    def reset_cache(self):
        self._cache = {}
        self._cache_loaded = False
