"""
Pydantic settings for vboxorm's VBoxManage backends.
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from .logging import configure_logging

CONFIG_FILE_NAME = ".vboxorm.yaml"


def _default_vboxmanage() -> str:
    return os.getenv("VBOXORM_VBOXMANAGE", "VBoxManage")


class VBoxSettings(BaseModel):
    """Settings used when talking to VirtualBox through VBoxManage."""

    vboxmanage: str = Field(default_factory=_default_vboxmanage, description="VBoxManage executable")
    timeout_seconds: int = Field(default=60, ge=1, le=3600, description="Per-command timeout")
    log_level: str = Field(default="INFO", description="DEBUG|INFO|WARNING|ERROR")
    json_logs: bool = Field(default=False, description="Render logs as JSON")
    nat_slot: int = Field(default=1, ge=1, le=8, description="Network adapter holding NAT rules")

    @field_validator("vboxmanage")
    @classmethod
    def vboxmanage_must_be_set(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("vboxmanage cannot be empty")
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_valid(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {valid_levels}")
        return v.upper()

    def configure_logging(self, log_file: Optional[Path] = None) -> None:
        """Apply log_level and json_logs to the structlog configuration."""
        configure_logging(self.log_level, json_output=self.json_logs, log_file=log_file)

    def save(self, path: Path) -> None:
        """Save settings to a YAML file."""
        path.write_text(yaml.dump(self.model_dump(), default_flow_style=False, sort_keys=False))

    @classmethod
    def load(cls, path: Path) -> "VBoxSettings":
        """Load settings from a YAML file or a directory holding .vboxorm.yaml."""
        if path.is_dir():
            path = path / CONFIG_FILE_NAME
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        data = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(data)
