"""Pydantic models for configuration and data validation."""

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field


class PageOption(BaseModel):
    """A single engine rendering setting applied to every page."""

    name: str = Field(..., min_length=1, description="Engine page option name (e.g. paperSize)")
    value: Any = Field(default=None, description="Option value, passed to the engine unchanged")


def _default_page_options() -> List[PageOption]:
    return [PageOption(name="paperSize", value={"format": "A4"})]


class EngineOptions(BaseModel):
    """Rendering engine settings."""

    launch_options: Dict[str, Any] = Field(
        default_factory=dict, description="Engine start-up configuration (executable_path, args)"
    )
    page_options: List[PageOption] = Field(
        default_factory=_default_page_options,
        description="Ordered page options, applied front to back before every render",
    )


class ConverterConfig(BaseModel):
    """Complete converter configuration with validation."""

    session_type: Literal["chromium"] = Field(
        default="chromium", description="Rendering engine backing the worker session"
    )
    engine: EngineOptions = Field(default_factory=EngineOptions)
    max_delay_ms: int = Field(
        default=30000, gt=0, description="Per-job deadline in milliseconds"
    )

    @classmethod
    def from_dict(cls, data: dict) -> "ConverterConfig":
        """Create config from nested dict (YAML)."""
        return cls(**data)

    def merge_cli_overrides(self, cli_args: dict) -> "ConverterConfig":
        """Apply CLI overrides and return new config instance."""
        config_dict = self.model_dump()

        if cli_args.get("max_delay") is not None:
            config_dict["max_delay_ms"] = cli_args["max_delay"]
        if cli_args.get("session_type") is not None:
            config_dict["session_type"] = cli_args["session_type"]
        if cli_args.get("paper_format") is not None:
            page_options = config_dict["engine"]["page_options"]
            for option in page_options:
                if option["name"] == "paperSize":
                    option["value"] = {**(option["value"] or {}), "format": cli_args["paper_format"]}
                    break
            else:
                page_options.append(
                    {"name": "paperSize", "value": {"format": cli_args["paper_format"]}}
                )

        return ConverterConfig.from_dict(config_dict)
