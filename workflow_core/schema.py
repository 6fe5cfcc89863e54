"""
Workflow definition schema: blocks, the canvas graph, definitions and the workflow aggregate.

Blocks are a discriminated union on ``block_type``. The backend read model
inlines referenced parameters (``parameters``, ``loop_over``, ``smtp_host`` ...);
the validators below fold those back into the ``*_key`` fields of the write
model so a loaded block can be sent back unchanged.
"""
from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, Iterable, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator

from workflow_core.errors import InvalidDefinitionError, UnsupportedBlockKind
from workflow_core.parameters import Parameter, to_parameter_yaml


class BlockType(str, Enum):
    """Supported block kinds."""

    TASK = "task"
    FOR_LOOP = "for_loop"
    CODE = "code"
    TEXT_PROMPT = "text_prompt"
    DOWNLOAD_TO_S3 = "download_to_s3"
    UPLOAD_TO_S3 = "upload_to_s3"
    SEND_EMAIL = "send_email"
    FILE_URL_PARSER = "file_url_parser"


BLOCK_TYPES = frozenset(block_type.value for block_type in BlockType)


class BlockBase(BaseModel):
    # Kind-specific fields this model does not declare are kept as extras.
    model_config = ConfigDict(extra="allow")

    label: str = Field(min_length=1)
    continue_on_failure: bool = False
    output_parameter: Optional[Dict[str, Any]] = None


class ParameterizedBlock(BlockBase):
    """A block that reads workflow parameters by key."""

    parameter_keys: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _fold_parameter_refs(cls, data: Any) -> Any:
        if isinstance(data, dict) and "parameters" in data:
            data = dict(data)
            parameters = data.pop("parameters") or []
            data.setdefault("parameter_keys", [p["key"] for p in parameters])
        return data


class TaskBlock(ParameterizedBlock):
    block_type: Literal["task"] = "task"
    url: Optional[str] = None
    title: str = ""
    navigation_goal: Optional[str] = None
    data_extraction_goal: Optional[str] = None
    data_schema: Optional[Union[Dict[str, Any], List[Any], str]] = None
    error_code_mapping: Optional[Dict[str, str]] = None
    max_retries: int = 0
    max_steps_per_run: Optional[int] = None
    complete_on_download: bool = False
    download_suffix: Optional[str] = None
    totp_verification_url: Optional[str] = None
    totp_identifier: Optional[str] = None


class ForLoopBlock(BlockBase):
    block_type: Literal["for_loop"] = "for_loop"
    loop_over_parameter_key: str = Field(min_length=1)
    loop_blocks: List["Block"] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _fold_loop_over(cls, data: Any) -> Any:
        if isinstance(data, dict) and "loop_over" in data:
            data = dict(data)
            loop_over = data.pop("loop_over") or {}
            data.setdefault("loop_over_parameter_key", loop_over.get("key"))
        return data


class CodeBlock(ParameterizedBlock):
    block_type: Literal["code"] = "code"
    code: str


class TextPromptBlock(ParameterizedBlock):
    block_type: Literal["text_prompt"] = "text_prompt"
    llm_key: str = ""
    prompt: str
    json_schema: Optional[Dict[str, Any]] = None


class DownloadToS3Block(BlockBase):
    block_type: Literal["download_to_s3"] = "download_to_s3"
    url: str


class UploadToS3Block(BlockBase):
    block_type: Literal["upload_to_s3"] = "upload_to_s3"
    path: Optional[str] = None


_SMTP_FIELDS = ("host", "port", "username", "password")


class SendEmailBlock(BlockBase):
    block_type: Literal["send_email"] = "send_email"
    smtp_host_secret_parameter_key: str
    smtp_port_secret_parameter_key: str
    smtp_username_secret_parameter_key: str
    smtp_password_secret_parameter_key: str
    sender: str
    recipients: List[str]
    subject: str
    body: str
    file_attachments: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _fold_smtp_secrets(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for name in _SMTP_FIELDS:
            inlined = data.pop(f"smtp_{name}", None)
            if isinstance(inlined, dict):
                data.setdefault(f"smtp_{name}_secret_parameter_key", inlined.get("key"))
        return data


class FileUrlParserBlock(BlockBase):
    block_type: Literal["file_url_parser"] = "file_url_parser"
    file_url: str
    file_type: Literal["csv"] = "csv"


Block = Annotated[
    Union[
        TaskBlock,
        ForLoopBlock,
        CodeBlock,
        TextPromptBlock,
        DownloadToS3Block,
        UploadToS3Block,
        SendEmailBlock,
        FileUrlParserBlock,
    ],
    Field(discriminator="block_type"),
]

ForLoopBlock.model_rebuild()

_block_adapter: TypeAdapter = TypeAdapter(Block)


def check_block_kinds(items: Iterable[Any]) -> None:
    """Fail fast on any block (nested ones included) whose kind is not supported."""
    for item in items:
        if isinstance(item, BaseModel):
            block_type = getattr(item, "block_type", None)
            label = getattr(item, "label", None)
            nested = getattr(item, "loop_blocks", None) or []
        elif isinstance(item, Mapping):
            block_type = item.get("block_type")
            label = item.get("label")
            nested = item.get("loop_blocks") or []
        else:
            raise InvalidDefinitionError(f"Block must be an object, got {type(item).__name__}")
        if isinstance(block_type, Enum):
            block_type = block_type.value
        if block_type not in BLOCK_TYPES:
            raise UnsupportedBlockKind(block_type, label)
        check_block_kinds(nested)


def parse_block(data: Any) -> Block:
    if isinstance(data, BaseModel):
        check_block_kinds([data])
        return data
    check_block_kinds([data])
    try:
        return _block_adapter.validate_python(data)
    except ValidationError as exc:
        raise InvalidDefinitionError(f"Invalid block '{data.get('label')}': {exc}") from exc


def parse_blocks(items: Iterable[Any]) -> List[Block]:
    return [parse_block(item) for item in items]


def to_block_yaml(block: Block) -> Dict[str, Any]:
    """Write *block* in the definition shape sent back to the workflow store."""
    data = block.model_dump(mode="json", exclude={"output_parameter", "loop_blocks"})
    if isinstance(block, ForLoopBlock):
        data["loop_blocks"] = [to_block_yaml(child) for child in block.loop_blocks]
    return {"block_type": data.pop("block_type"), **data}


class Position(BaseModel):
    x: float = 0.0
    y: float = 0.0


class Node(BaseModel):
    """A canvas node wrapping exactly one block."""

    id: str = Field(..., description="Stable node ID derived from the block label")
    type: str = Field(..., description="Canvas node type")
    position: Position = Field(default_factory=Position)
    parent_id: Optional[str] = Field(default=None, description="Container node this node is nested in")
    width: Optional[float] = None
    height: Optional[float] = None
    block: Block = Field(..., description="The wrapped block; containers hold it without nested blocks")


class Edge(BaseModel):
    """Execution order between two nodes of the same scope."""

    id: str = Field(..., description="Unique edge ID")
    source: str = Field(..., description="Source node ID")
    target: str = Field(..., description="Target node ID")


class Graph(BaseModel):
    """Editable node/edge form of a workflow definition."""

    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)


class WorkflowDefinition(BaseModel):
    """Ordered blocks plus the parameters they reference."""

    model_config = ConfigDict(extra="ignore")

    parameters: List[Parameter] = Field(default_factory=list)
    blocks: List[Block] = Field(default_factory=list)

    @field_validator("parameters")
    @classmethod
    def validate_parameters(cls, v: List[Parameter]) -> List[Parameter]:
        """Validate that parameters have unique keys."""
        keys = [parameter.key for parameter in v]
        if len(keys) != len(set(keys)):
            duplicates = sorted({key for key in keys if keys.count(key) > 1})
            raise ValueError(f"Parameter keys must be unique: {', '.join(duplicates)}")
        return v

    def to_yaml_dict(self) -> Dict[str, Any]:
        return {
            "parameters": [to_parameter_yaml(parameter) for parameter in self.parameters],
            "blocks": [to_block_yaml(block) for block in self.blocks],
        }


class Workflow(BaseModel):
    """A workflow as returned by the workflow store."""

    model_config = ConfigDict(extra="ignore")

    workflow_permanent_id: Optional[str] = None
    workflow_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    proxy_location: Optional[str] = None
    webhook_callback_url: Optional[str] = None
    totp_verification_url: Optional[str] = None
    is_saved_task: bool = False
    workflow_definition: WorkflowDefinition = Field(default_factory=WorkflowDefinition)


class WorkflowDefinitionUpdate(BaseModel):
    """The full replacement body for a workflow, built by the save reconciler."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: Optional[str] = None
    proxy_location: Optional[str] = None
    webhook_callback_url: Optional[str] = None
    totp_verification_url: Optional[str] = None
    workflow_definition: WorkflowDefinition
    is_saved_task: bool = False

    def to_payload(self) -> Dict[str, Any]:
        """Wire representation, keys in the order the workflow store documents them."""
        return {
            "title": self.title,
            "description": self.description,
            "proxy_location": self.proxy_location,
            "webhook_callback_url": self.webhook_callback_url,
            "totp_verification_url": self.totp_verification_url,
            "workflow_definition": self.workflow_definition.to_yaml_dict(),
            "is_saved_task": self.is_saved_task,
        }


__all__ = [
    "BlockType",
    "BLOCK_TYPES",
    "BlockBase",
    "TaskBlock",
    "ForLoopBlock",
    "CodeBlock",
    "TextPromptBlock",
    "DownloadToS3Block",
    "UploadToS3Block",
    "SendEmailBlock",
    "FileUrlParserBlock",
    "Block",
    "check_block_kinds",
    "parse_block",
    "parse_blocks",
    "to_block_yaml",
    "Position",
    "Node",
    "Edge",
    "Graph",
    "WorkflowDefinition",
    "Workflow",
    "WorkflowDefinitionUpdate",
]
