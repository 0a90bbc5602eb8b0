"""Resolved runtime settings for the lifecycle manager and web app."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from focalpoint.core.web_config import WebConfig

MIB = 1024 * 1024
DEFAULT_BACKUP_LIMIT_MB = 500
DEFAULT_REQUIRED_TABLES = ("admin",)


@dataclass(frozen=True)
class Settings:
    """Filesystem layout, retention budget and server options."""

    base_dir: Path
    data_dir: Path
    db_path: Path
    assets_dir: Path
    backup_dir: Path
    export_dir: Path
    legacy_ledger_path: Path
    log_dir: Path
    backup_limit_bytes: int
    required_tables: tuple
    display_tz: ZoneInfo
    web_host: str = "0.0.0.0"
    web_port: int = 3000
    max_upload_bytes: int = 1024 * MIB

    @property
    def action_log_file(self):
        return self.log_dir / "focalpoint-actions.log"

    @property
    def system_log_file(self):
        return self.log_dir / "focalpoint.log"

    @classmethod
    def from_config(cls, cfg: WebConfig, base_dir) -> "Settings":
        """Build settings from a loaded ``WebConfig``; paths resolve from ``base_dir``."""
        base = Path(base_dir)
        data_dir = cfg.get_path("DATA_DIR", base / "data")
        try:
            display_tz = ZoneInfo(cfg.get_str("DISPLAY_TZ", "UTC"))
        except (ZoneInfoNotFoundError, ValueError):
            display_tz = ZoneInfo("UTC")
        return cls(
            base_dir=base,
            data_dir=data_dir,
            db_path=cfg.get_path("DB_PATH", data_dir / "gallery.db"),
            assets_dir=cfg.get_path("ASSETS_DIR", base / "public" / "images"),
            backup_dir=cfg.get_path("BACKUP_DIR", data_dir / "backups"),
            export_dir=cfg.get_path("EXPORT_DIR", data_dir / "exports"),
            legacy_ledger_path=cfg.get_path("LEGACY_LEDGER_PATH", data_dir / "umzug.json"),
            log_dir=cfg.get_path("LOG_DIR", data_dir / "log"),
            backup_limit_bytes=cfg.get_int("BACKUP_LIMIT_MB", DEFAULT_BACKUP_LIMIT_MB, minimum=1) * MIB,
            required_tables=tuple(cfg.get_list("REQUIRED_TABLES", DEFAULT_REQUIRED_TABLES)),
            display_tz=display_tz,
            web_host=cfg.get_str("WEB_HOST", "0.0.0.0"),
            web_port=cfg.get_int("WEB_PORT", 3000, minimum=1),
            max_upload_bytes=cfg.get_int("MAX_UPLOAD_MB", 1024, minimum=1) * MIB,
        )


def load_settings(base_dir, config_name="focalpoint.env"):
    """Load ``focalpoint.env`` from ``base_dir`` and resolve settings."""
    base = Path(base_dir)
    cfg = WebConfig(base / config_name, base)
    return cfg, Settings.from_config(cfg, base)


