"""Output placement: inline encoded payloads or files written as resources."""

from __future__ import annotations

import base64
import logging
import math
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

from ..config import ServerSettings, SizeLimits
from ..errors import ToolError
from ..utils.helpers import file_uri, resolve_path

logger = logging.getLogger(__name__)


class OutputMode(str, Enum):
    INLINE = "inline"
    RESOURCE = "resource"


@dataclass(frozen=True, slots=True)
class OutputArtifact:
    data: bytes
    target_format: str
    file_name: str
    mime_type: str = "application/octet-stream"

    @property
    def is_svg(self) -> bool:
        return self.target_format == "svg"


class OutputModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)


class InlinePayload(OutputModel):
    text: str
    encoded_len: int


class ResourceReference(OutputModel):
    path: str
    uri: str


Placement = Union[InlinePayload, ResourceReference]


def encoded_length(artifact: OutputArtifact) -> int:
    if artifact.is_svg:
        return len(artifact.data)
    return 4 * math.ceil(len(artifact.data) / 3)


class InlineBudget:
    """Inline bytes emitted so far by one call, checked against a single ceiling."""

    def __init__(self, ceiling: int, label: str = "output") -> None:
        self.ceiling = ceiling
        self.label = label
        self.used = 0

    @classmethod
    def for_svg(cls, limits: SizeLimits) -> "InlineBudget":
        return cls(limits.max_svg_output_bytes, "svg output")

    @classmethod
    def for_binary(cls, limits: SizeLimits) -> "InlineBudget":
        return cls(limits.max_output_bytes, "output")

    def charge(self, amount: int, *, source: str | None = None) -> None:
        if self.used + amount > self.ceiling:
            raise ToolError.too_large(
                f"{self.label} exceeds max size ({self.used + amount} > {self.ceiling} bytes)",
                source=source,
            )
        self.used += amount


def inline(artifact: OutputArtifact, budget: InlineBudget, *, source: str | None = None) -> InlinePayload:
    size = encoded_length(artifact)
    budget.charge(size, source=source)
    if artifact.is_svg:
        text = artifact.data.decode("utf-8")
    else:
        text = base64.b64encode(artifact.data).decode("ascii")
    return InlinePayload(text=text, encoded_len=size)


def _target_path(
    artifact: OutputArtifact,
    settings: ServerSettings,
    output_path: Optional[str],
    directory: Optional[str],
) -> Path:
    if output_path is not None:
        target = resolve_path(output_path, sandbox_root=settings.sandbox_root)
        if target.is_dir():
            target = target / artifact.file_name
        return target
    if directory is not None:
        return resolve_path(directory, sandbox_root=settings.sandbox_root) / artifact.file_name
    return settings.resource_dir / artifact.file_name


def write_resource(
    artifact: OutputArtifact,
    settings: ServerSettings,
    *,
    output_path: Optional[str] = None,
    directory: Optional[str] = None,
    source: str | None = None,
) -> ResourceReference:
    """Write ``artifact`` to ``output_path``, into ``directory``, or into the resource directory."""
    try:
        target = _target_path(artifact, settings, output_path, directory)
    except PermissionError as exc:
        raise ToolError.invalid_input(str(exc), source=source) from exc

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(artifact.data)
    except OSError as exc:
        raise ToolError.internal(f"failed to write output: {exc}", source=source) from exc

    logger.debug("wrote resource", extra={"path": str(target), "bytes_len": len(artifact.data)})
    return ResourceReference(path=str(target), uri=file_uri(target))


def resolve_output(
    artifact: OutputArtifact,
    mode: OutputMode,
    settings: ServerSettings,
    *,
    budget: InlineBudget | None = None,
    output_path: Optional[str] = None,
    directory: Optional[str] = None,
    source: str | None = None,
) -> Placement:
    if mode is OutputMode.RESOURCE:
        return write_resource(artifact, settings, output_path=output_path, directory=directory, source=source)
    if budget is None:
        budget = InlineBudget.for_svg(settings.limits) if artifact.is_svg else InlineBudget.for_binary(settings.limits)
    return inline(artifact, budget, source=source)
