from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="QUICKFORM_", case_sensitive=False)

    template_dir: Path | None = None
    output_dir: Path = Path("output")
    template_loader: Literal["memory", "disk"] = "memory"
    trim_blocks: bool = True
    lstrip_blocks: bool = True
    keep_trailing_newline: bool = True

    def jinja_options(self) -> dict[str, Any]:
        return {
            "trim_blocks": self.trim_blocks,
            "lstrip_blocks": self.lstrip_blocks,
            "keep_trailing_newline": self.keep_trailing_newline,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
