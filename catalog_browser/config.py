"""Configuration for the catalog browser."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field


class CatalogConfig(BaseModel):
    """Settings for the API connection and terminal browser."""

    base_url: str = Field(default="https://dummyjson.com", description="Product API root")
    page_size: int = Field(default=30, ge=1, description="Products per page")
    timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP request timeout")
    max_pages: int = Field(default=0, ge=0, description="Stop browsing after this many pages (0 = no limit)")
    max_retries: int = Field(default=2, ge=0, description="Automatic retries after a failed load")
    columns: int = Field(default=3, ge=1, description="Grid columns when rendering")

    @classmethod
    def load(cls, filepath: Path | str | None) -> "CatalogConfig":
        """Load config from a YAML file; defaults when missing or empty."""
        if filepath is None:
            return cls()
        filepath = Path(filepath)
        if not filepath.exists():
            return cls()
        data = yaml.safe_load(filepath.read_text(encoding="utf-8"))
        if data is None:
            return cls()
        return cls.model_validate(data)

    def save(self, filepath: Path | str) -> None:
        """Write config to a YAML file."""
        filepath = Path(filepath)
        filepath.write_text(
            yaml.dump(self.model_dump(mode="json"), allow_unicode=True, default_flow_style=False, sort_keys=False),
            encoding="utf-8",
        )

    def with_overrides(self, **overrides) -> "CatalogConfig":
        """Return a copy with non-None overrides applied and validated."""
        updates = {key: value for key, value in overrides.items() if value is not None}
        return self.model_validate({**self.model_dump(), **updates})
