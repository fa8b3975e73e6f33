"""
Parser settings.

Settings arrive from configuration files as plain mappings shaped like
``{"experimental": {"emptyMode": "empty"}, "delimiters": {"field": "*"}}``
and are validated here with pydantic before the parser uses them.
"""

from typing import Any, Dict, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

EmptyModeName = Literal["legacy", "empty"]


class ExperimentalSettings(BaseModel):
    """Opt-in behaviour that may change the shape of the tree."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="forbid")

    empty_mode: EmptyModeName = Field(default="legacy", alias="emptyMode")


class DelimiterSettings(BaseModel):
    """Delimiter overrides; unset entries keep their defaults."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    field: Optional[str] = Field(default=None, min_length=1, max_length=1)
    component: Optional[str] = Field(default=None, min_length=1, max_length=1)
    repetition: Optional[str] = Field(default=None, min_length=1, max_length=1)
    escape: Optional[str] = Field(default=None, min_length=1, max_length=1)
    subcomponent: Optional[str] = Field(default=None, min_length=1, max_length=1)
    # "\r\n" is a valid segment terminator
    segment: Optional[str] = Field(default=None, min_length=1, max_length=2)

    def overrides(self) -> Dict[str, str]:
        return self.model_dump(exclude_none=True)


class HL7v2Settings(BaseModel):
    """Top-level settings value."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    experimental: ExperimentalSettings = Field(default_factory=ExperimentalSettings)
    delimiters: DelimiterSettings = Field(default_factory=DelimiterSettings)

    @property
    def empty_mode(self) -> str:
        return self.experimental.empty_mode


def load_settings(value: Union[None, HL7v2Settings, Mapping[str, Any]]) -> HL7v2Settings:
    """
    Coerce ``value`` into HL7v2Settings.

    Raises:
        pydantic.ValidationError: If the mapping holds invalid values
    """
    if value is None:
        return HL7v2Settings()
    if isinstance(value, HL7v2Settings):
        return value
    return HL7v2Settings.model_validate(dict(value))
