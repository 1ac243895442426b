"""Pydantic schemas for values exchanged with the furnace proxy.

These schemas act as contracts at ingress points so we fail fast when
registry payloads change shape.
"""
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ColorScheme(str, Enum):
    """Palettes understood by flamegraph.pl ``--colors``."""

    HOT = "hot"
    CHAIN = "chain"
    JAVA = "java"
    JS = "js"
    PERL = "perl"
    RED = "red"
    GREEN = "green"
    BLUE = "blue"
    AQUA = "aqua"
    YELLOW = "yellow"
    PURPLE = "purple"
    ORANGE = "orange"


class Target(BaseModel):
    """A profiling-capable pod, as listed by ``/proxy/registered``.

    Registry entries also carry ``ip``, ``port`` and ``expires``; only the
    (namespace, pod) pair identifies a target on the client side.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    namespace: str
    name: str = Field(alias="podName")

    @field_validator("namespace", "name")
    @classmethod
    def nonempty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("namespace and pod name cannot be empty")
        return v

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class RecordingOptions(BaseModel):
    """Options applied when a recording is stopped and rendered."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    color_scheme: ColorScheme = ColorScheme.HOT
    inverted: bool = True
    use_symfs: bool = False

    def with_option(self, name: str, value) -> "RecordingOptions":
        """Return a validated copy with one option replaced."""
        data = self.model_dump()
        if name not in data:
            raise ValueError(f"Unknown recording option: {name}")
        data[name] = value
        return RecordingOptions.model_validate(data)

    def to_query(self) -> dict:
        return {
            "colors": self.color_scheme.value,
            "inverted": "true" if self.inverted else "false",
            "symfs": "true" if self.use_symfs else "false",
        }
