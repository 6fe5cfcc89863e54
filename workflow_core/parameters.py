"""
Workflow parameters and their ownership taxonomy.

Parameters come in a closed set of kinds. Two of them are surfaced to the
user for editing (``workflow`` inputs and ``bitwarden_login_credential``
references); the rest are owned by the system and are carried through every
save unchanged because blocks reference them by key.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, Iterable, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from shared.config import config
from workflow_core.errors import InvalidDefinitionError, ParameterKindError, UnknownParameterType


class ParameterType(str, Enum):
    WORKFLOW = "workflow"
    BITWARDEN_LOGIN_CREDENTIAL = "bitwarden_login_credential"
    AWS_SECRET = "aws_secret"
    BITWARDEN_SENSITIVE_INFORMATION = "bitwarden_sensitive_information"
    CONTEXT = "context"


class WorkflowParameterType(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    JSON = "json"
    FILE_URL = "file_url"


class ParameterKind(str, Enum):
    USER_EDITABLE = "user_editable"
    SYSTEM_MANAGED = "system_managed"


_KIND_BY_TYPE: Dict[str, ParameterKind] = {
    ParameterType.WORKFLOW.value: ParameterKind.USER_EDITABLE,
    ParameterType.BITWARDEN_LOGIN_CREDENTIAL.value: ParameterKind.USER_EDITABLE,
    ParameterType.AWS_SECRET.value: ParameterKind.SYSTEM_MANAGED,
    ParameterType.BITWARDEN_SENSITIVE_INFORMATION.value: ParameterKind.SYSTEM_MANAGED,
    ParameterType.CONTEXT.value: ParameterKind.SYSTEM_MANAGED,
}


# -----------------------------
# Wire models
# -----------------------------
class ParameterBase(BaseModel):
    # Backend read models carry ids and timestamps; they are not part of the definition.
    model_config = ConfigDict(extra="ignore")

    key: str = Field(min_length=1)
    description: Optional[str] = None


class WorkflowParameter(ParameterBase):
    parameter_type: Literal["workflow"] = "workflow"
    workflow_parameter_type: WorkflowParameterType
    default_value: Optional[Any] = None


class BitwardenLoginCredentialParameter(ParameterBase):
    parameter_type: Literal["bitwarden_login_credential"] = "bitwarden_login_credential"
    bitwarden_client_id_aws_secret_key: str
    bitwarden_client_secret_aws_secret_key: str
    bitwarden_master_password_aws_secret_key: str
    bitwarden_collection_id: Optional[str] = None
    url_parameter_key: Optional[str] = None


class AWSSecretParameter(ParameterBase):
    parameter_type: Literal["aws_secret"] = "aws_secret"
    aws_key: str


class BitwardenSensitiveInformationParameter(ParameterBase):
    parameter_type: Literal["bitwarden_sensitive_information"] = "bitwarden_sensitive_information"
    bitwarden_client_id_aws_secret_key: str
    bitwarden_client_secret_aws_secret_key: str
    bitwarden_master_password_aws_secret_key: str
    bitwarden_collection_id: str
    bitwarden_identity_key: str
    bitwarden_identity_fields: List[str] = Field(default_factory=list)


class ContextParameter(ParameterBase):
    """
    A value pulled out of another parameter at run time.

    The backend returns the full ``source`` parameter; the write model only
    names it through ``source_parameter_key``.
    """

    parameter_type: Literal["context"] = "context"
    source: Optional[Dict[str, Any]] = None
    source_parameter_key: Optional[str] = None

    @model_validator(mode="after")
    def _check_source(self) -> "ContextParameter":
        if self.source_parameter_key is None:
            if not self.source or not self.source.get("key"):
                raise ValueError(f"context parameter '{self.key}' requires source or source_parameter_key")
            self.source_parameter_key = self.source["key"]
        return self


Parameter = Annotated[
    Union[
        WorkflowParameter,
        BitwardenLoginCredentialParameter,
        AWSSecretParameter,
        BitwardenSensitiveInformationParameter,
        ContextParameter,
    ],
    Field(discriminator="parameter_type"),
]

_parameter_adapter: TypeAdapter = TypeAdapter(Parameter)


# -----------------------------
# Editable (canvas-facing) models
# -----------------------------
class EditableModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class EditableWorkflowParameter(EditableModel):
    key: str = Field(min_length=1)
    parameter_type: Literal["workflow"] = Field(default="workflow", alias="parameterType")
    data_type: WorkflowParameterType = Field(alias="dataType")
    description: Optional[str] = None
    default_value: Optional[Any] = Field(default=None, alias="defaultValue")


class EditableCredentialParameter(EditableModel):
    key: str = Field(min_length=1)
    parameter_type: Literal["credential"] = Field(default="credential", alias="parameterType")
    collection_id: Optional[str] = Field(default=None, alias="collectionId")
    url_parameter_key: Optional[str] = Field(default=None, alias="urlParameterKey")
    description: Optional[str] = None


EditableParameter = Union[EditableWorkflowParameter, EditableCredentialParameter]

_EDITABLE_MODELS = {
    "workflow": EditableWorkflowParameter,
    "credential": EditableCredentialParameter,
}


def _parameter_type_of(parameter: Any) -> Any:
    if isinstance(parameter, Mapping):
        return parameter.get("parameter_type")
    return getattr(parameter, "parameter_type", None)


def parse_parameter(data: Any) -> Parameter:
    """Validate one raw parameter, failing fast on an unknown ``parameter_type``."""
    if isinstance(data, BaseModel):
        data = data.model_dump()
    if not isinstance(data, Mapping):
        raise InvalidDefinitionError(f"Parameter must be an object, got {type(data).__name__}")
    classify(data)
    try:
        return _parameter_adapter.validate_python(data)
    except ValidationError as exc:
        raise InvalidDefinitionError(f"Invalid parameter '{data.get('key')}': {exc}") from exc


def parse_parameters(items: Iterable[Any]) -> List[Parameter]:
    return [parse_parameter(item) for item in items]


def classify(parameter: Any) -> ParameterKind:
    """Return whether *parameter* is edited by the user or managed by the system."""
    parameter_type = _parameter_type_of(parameter)
    if isinstance(parameter_type, Enum):
        parameter_type = parameter_type.value
    try:
        return _KIND_BY_TYPE[parameter_type]
    except (KeyError, TypeError):
        key = parameter.get("key") if isinstance(parameter, Mapping) else getattr(parameter, "key", None)
        raise UnknownParameterType(parameter_type, key) from None


def is_user_editable(parameter: Any) -> bool:
    return classify(parameter) is ParameterKind.USER_EDITABLE


def is_system_managed(parameter: Any) -> bool:
    return classify(parameter) is ParameterKind.SYSTEM_MANAGED


def to_editable_view(parameter: Parameter) -> EditableParameter:
    """
    Project a user-editable parameter into the shape the parameter editor uses.

    Raises:
        ParameterKindError: If *parameter* is system-managed. Callers must
            filter those out first (see ``editable_parameters``).
    """
    if isinstance(parameter, WorkflowParameter):
        return EditableWorkflowParameter(
            key=parameter.key,
            data_type=parameter.workflow_parameter_type,
            description=parameter.description,
            default_value=parameter.default_value,
        )
    if isinstance(parameter, BitwardenLoginCredentialParameter):
        return EditableCredentialParameter(
            key=parameter.key,
            collection_id=parameter.bitwarden_collection_id,
            url_parameter_key=parameter.url_parameter_key,
            description=parameter.description,
        )
    classify(parameter)
    raise ParameterKindError(
        f"Parameter '{parameter.key}' of type '{parameter.parameter_type}' is system-managed and cannot be edited"
    )


def editable_parameters(parameters: Iterable[Parameter]) -> List[EditableParameter]:
    return [to_editable_view(p) for p in parameters if is_user_editable(p)]


def extract_system_managed(parameters: Iterable[Parameter]) -> List[Parameter]:
    """Return exactly the system-managed parameters, in their original order."""
    return [p for p in parameters if is_system_managed(p)]


def parse_editable_parameter(data: Mapping[str, Any]) -> EditableParameter:
    parameter_type = data.get("parameterType", data.get("parameter_type"))
    try:
        model = _EDITABLE_MODELS[parameter_type]
    except (KeyError, TypeError):
        raise UnknownParameterType(parameter_type, data.get("key")) from None
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise InvalidDefinitionError(f"Invalid edited parameter '{data.get('key')}': {exc}") from exc


def materialize(parameter: Any) -> Parameter:
    """
    Turn an edited parameter back into a full, user-editable wire parameter.

    Accepts the editable projection (model or camelCase dict) or an already
    materialized parameter. System-managed parameters are rejected: they can
    only reach a save through ``extract_system_managed``.
    """
    if isinstance(parameter, Mapping):
        if "parameterType" in parameter:
            parameter = parse_editable_parameter(parameter)
        else:
            parameter = parse_parameter(parameter)

    if isinstance(parameter, EditableWorkflowParameter):
        return WorkflowParameter(
            key=parameter.key,
            description=parameter.description,
            workflow_parameter_type=parameter.data_type,
            default_value=parameter.default_value,
        )
    if isinstance(parameter, EditableCredentialParameter):
        return BitwardenLoginCredentialParameter(
            key=parameter.key,
            description=parameter.description,
            bitwarden_client_id_aws_secret_key=config.bitwarden_client_id_aws_secret_key,
            bitwarden_client_secret_aws_secret_key=config.bitwarden_client_secret_aws_secret_key,
            bitwarden_master_password_aws_secret_key=config.bitwarden_master_password_aws_secret_key,
            bitwarden_collection_id=parameter.collection_id,
            url_parameter_key=parameter.url_parameter_key,
        )
    if is_system_managed(parameter):
        raise ParameterKindError(
            f"Parameter '{parameter.key}' of type '{parameter.parameter_type}' is system-managed "
            "and cannot be supplied as an edited parameter"
        )
    return parameter


def to_parameter_yaml(parameter: Parameter) -> Dict[str, Any]:
    """Write *parameter* in the definition shape sent back to the workflow store."""
    data = parameter.model_dump(mode="json")
    if isinstance(parameter, ContextParameter):
        data.pop("source", None)
    return {"parameter_type": data.pop("parameter_type"), **data}


__all__ = [
    "ParameterType",
    "WorkflowParameterType",
    "ParameterKind",
    "WorkflowParameter",
    "BitwardenLoginCredentialParameter",
    "AWSSecretParameter",
    "BitwardenSensitiveInformationParameter",
    "ContextParameter",
    "Parameter",
    "EditableWorkflowParameter",
    "EditableCredentialParameter",
    "EditableParameter",
    "parse_parameter",
    "parse_parameters",
    "parse_editable_parameter",
    "classify",
    "is_user_editable",
    "is_system_managed",
    "to_editable_view",
    "editable_parameters",
    "extract_system_managed",
    "materialize",
    "to_parameter_yaml",
]
