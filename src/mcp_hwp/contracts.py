"""Tool argument models and the input schemas published by ``tools/list``."""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .core.blocks import DocumentSpec
from .core.outputs import OutputMode

DEFAULT_PREVIEW_CHARS = 120

_FORMAT_FIELD = Field(
    default=None,
    description="Input format hint; auto detects hwp or hwpx.",
    json_schema_extra={"enum": ["auto", "hwp", "hwpx"]},
)


def _output_path_field():
    return Field(
        default=None,
        min_length=1,
        description="Write the produced file here and return a resource reference instead of inline data.",
    )


class ArgsModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)


class DocumentInputArgs(ArgsModel):
    path: Optional[str] = Field(default=None, description="Filesystem path of an .hwp or .hwpx file.")
    base64: Optional[str] = Field(default=None, description="Document bytes encoded as standard base64.")
    format: Optional[str] = _FORMAT_FIELD


class ExtractTextArgs(DocumentInputArgs):
    max_chars: Optional[int] = Field(default=None, ge=0)
    include_newlines: bool = True
    normalize_whitespace: bool = False


class InspectMetadataArgs(DocumentInputArgs):
    pass


class SummarizeStructureArgs(DocumentInputArgs):
    max_sections: Optional[int] = Field(default=None, ge=0)
    max_paragraphs_per_section: Optional[int] = Field(default=None, ge=0)
    preview_chars: int = Field(default=DEFAULT_PREVIEW_CHARS, ge=0)


class RenderSvgArgs(DocumentInputArgs):
    page: Optional[int] = Field(default=None, ge=1, description="1-based page number.")
    pages: Optional[List[Annotated[int, Field(ge=1)]]] = Field(default=None, description="1-based page numbers.")
    output: OutputMode = OutputMode.INLINE

    def selected_pages(self) -> List[int]:
        """``page`` then ``pages``, de-duplicated in order; page 1 when neither is given."""
        requested: List[int] = []
        if self.page is not None:
            requested.append(self.page)
        requested.extend(self.pages or [])
        if not requested:
            return [1]
        return list(dict.fromkeys(requested))


class ConvertArgs(DocumentInputArgs):
    to: Literal["hwp", "hwpx"]
    output_path: Optional[str] = _output_path_field()


class CreateDocumentArgs(ArgsModel):
    text: str = Field(description="Document text; each line becomes one paragraph.")
    output_path: Optional[str] = _output_path_field()

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text must not be blank")
        return value


class CreateRichDocumentArgs(ArgsModel):
    to: Literal["hwp", "hwpx"] = "hwpx"
    output_path: Optional[str] = _output_path_field()
    document: DocumentSpec


class ExtractRichArgs(DocumentInputArgs):
    images: Literal["none", "metadata", "inline", "resource"] = "metadata"
    max_image_bytes: int = Field(default=0, ge=0, description="Per-image cap; 0 disables it.")
    output_path: Optional[str] = Field(
        default=None,
        min_length=1,
        description="Directory for images written in resource mode.",
    )


def input_schema(model: Type[ArgsModel]) -> Dict[str, Any]:
    schema = model.model_json_schema(by_alias=True)
    schema.pop("title", None)
    if issubclass(model, DocumentInputArgs):
        schema["oneOf"] = [{"required": ["path"]}, {"required": ["base64"]}]
    return schema
