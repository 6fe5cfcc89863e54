from __future__ import annotations

import pytest

from shared.config import config
from workflow_core.errors import ParameterKindError, UnknownParameterType
from workflow_core.parameters import (
    AWSSecretParameter,
    BitwardenLoginCredentialParameter,
    BitwardenSensitiveInformationParameter,
    ContextParameter,
    EditableCredentialParameter,
    EditableWorkflowParameter,
    ParameterKind,
    WorkflowParameter,
    classify,
    editable_parameters,
    extract_system_managed,
    materialize,
    parse_parameter,
    to_editable_view,
    to_parameter_yaml,
)


def _credential(key: str = "login") -> BitwardenLoginCredentialParameter:
    return BitwardenLoginCredentialParameter(
        key=key,
        bitwarden_client_id_aws_secret_key="CLIENT_ID",
        bitwarden_client_secret_aws_secret_key="CLIENT_SECRET",
        bitwarden_master_password_aws_secret_key="MASTER_PASSWORD",
        bitwarden_collection_id="collection-1",
        url_parameter_key="login_url",
    )


def _sensitive(key: str = "card") -> BitwardenSensitiveInformationParameter:
    return BitwardenSensitiveInformationParameter(
        key=key,
        bitwarden_client_id_aws_secret_key="CLIENT_ID",
        bitwarden_client_secret_aws_secret_key="CLIENT_SECRET",
        bitwarden_master_password_aws_secret_key="MASTER_PASSWORD",
        bitwarden_collection_id="collection-1",
        bitwarden_identity_key="identity",
        bitwarden_identity_fields=["number", "cvv"],
    )


def _mixed_parameters():
    return [
        WorkflowParameter(key="k1", workflow_parameter_type="string"),
        AWSSecretParameter(key="secret1", aws_key="SECRET_1"),
        _credential("login"),
        ContextParameter(key="ctx", source_parameter_key="k1"),
        _sensitive("card"),
        WorkflowParameter(key="count", workflow_parameter_type="integer", default_value=3),
    ]


def test_classify_splits_user_editable_and_system_managed() -> None:
    kinds = {p.key: classify(p) for p in _mixed_parameters()}

    assert kinds == {
        "k1": ParameterKind.USER_EDITABLE,
        "secret1": ParameterKind.SYSTEM_MANAGED,
        "login": ParameterKind.USER_EDITABLE,
        "ctx": ParameterKind.SYSTEM_MANAGED,
        "card": ParameterKind.SYSTEM_MANAGED,
        "count": ParameterKind.USER_EDITABLE,
    }


def test_classify_unknown_parameter_type_fails_fast() -> None:
    with pytest.raises(UnknownParameterType) as excinfo:
        classify({"key": "result", "parameter_type": "output"})

    assert excinfo.value.parameter_type == "output"
    assert "result" in str(excinfo.value)


def test_parse_parameter_rejects_unknown_type() -> None:
    with pytest.raises(UnknownParameterType):
        parse_parameter({"key": "x", "parameter_type": "onepassword"})


def test_workflow_parameter_editable_view() -> None:
    view = to_editable_view(WorkflowParameter(key="k1", workflow_parameter_type="string"))

    assert view.model_dump(mode="json", by_alias=True, exclude_none=True) == {
        "key": "k1",
        "parameterType": "workflow",
        "dataType": "string",
    }


def test_credential_parameter_editable_view() -> None:
    view = to_editable_view(_credential())

    assert isinstance(view, EditableCredentialParameter)
    assert view.model_dump(by_alias=True, exclude_none=True) == {
        "key": "login",
        "parameterType": "credential",
        "collectionId": "collection-1",
        "urlParameterKey": "login_url",
    }


@pytest.mark.parametrize(
    "parameter",
    [
        AWSSecretParameter(key="secret1", aws_key="SECRET_1"),
        ContextParameter(key="ctx", source_parameter_key="k1"),
        _sensitive(),
    ],
)
def test_editable_view_rejects_system_managed(parameter) -> None:
    with pytest.raises(ParameterKindError):
        to_editable_view(parameter)


def test_editable_parameters_filters_and_keeps_order() -> None:
    views = editable_parameters(_mixed_parameters())

    assert [v.key for v in views] == ["k1", "login", "count"]


def test_extract_system_managed_is_verbatim_and_ordered() -> None:
    parameters = _mixed_parameters()

    extracted = extract_system_managed(parameters)

    assert [p.key for p in extracted] == ["secret1", "ctx", "card"]
    assert extracted[0] is parameters[1]
    assert extracted[2] is parameters[4]


def test_materialize_credential_uses_configured_secret_names() -> None:
    parameter = materialize(
        EditableCredentialParameter(key="login", collection_id="c-9", url_parameter_key="url")
    )

    assert isinstance(parameter, BitwardenLoginCredentialParameter)
    assert parameter.bitwarden_collection_id == "c-9"
    assert parameter.url_parameter_key == "url"
    assert parameter.bitwarden_client_id_aws_secret_key == config.bitwarden_client_id_aws_secret_key
    assert parameter.bitwarden_master_password_aws_secret_key == config.bitwarden_master_password_aws_secret_key


def test_materialize_accepts_camel_case_mapping() -> None:
    parameter = materialize({"key": "k1", "parameterType": "workflow", "dataType": "json", "defaultValue": {"a": 1}})

    assert parameter == WorkflowParameter(key="k1", workflow_parameter_type="json", default_value={"a": 1})


def test_materialize_passes_through_wire_parameters() -> None:
    parameter = WorkflowParameter(key="k1", workflow_parameter_type="string", default_value="new")

    assert materialize(parameter) is parameter


def test_materialize_rejects_system_managed() -> None:
    with pytest.raises(ParameterKindError):
        materialize(AWSSecretParameter(key="secret1", aws_key="SECRET_1"))


def test_materialize_rejects_unknown_editable_type() -> None:
    with pytest.raises(UnknownParameterType):
        materialize({"key": "k1", "parameterType": "secret"})


@pytest.mark.parametrize(
    "raw",
    [
        {"key": "k", "parameter_type": ["workflow"]},
        {"key": "k", "parameterType": {"kind": "workflow"}},
    ],
)
def test_materialize_rejects_unhashable_parameter_type(raw) -> None:
    with pytest.raises(UnknownParameterType):
        materialize(raw)


def test_read_model_bookkeeping_fields_are_dropped() -> None:
    parameter = parse_parameter(
        {
            "aws_secret_parameter_id": "asp_1",
            "workflow_id": "w_1",
            "key": "secret1",
            "parameter_type": "aws_secret",
            "aws_key": "SECRET_1",
            "description": None,
            "created_at": "2024-05-01T00:00:00",
            "modified_at": "2024-05-01T00:00:00",
            "deleted_at": None,
        }
    )

    assert to_parameter_yaml(parameter) == {
        "parameter_type": "aws_secret",
        "key": "secret1",
        "description": None,
        "aws_key": "SECRET_1",
    }


def test_context_parameter_source_collapses_to_key() -> None:
    parameter = parse_parameter(
        {
            "key": "ctx",
            "parameter_type": "context",
            "source": {"key": "login", "parameter_type": "bitwarden_login_credential"},
        }
    )

    data = to_parameter_yaml(parameter)

    assert data["source_parameter_key"] == "login"
    assert "source" not in data


def test_editable_round_trip_conserves_keys() -> None:
    parameters = _mixed_parameters()

    system = extract_system_managed(parameters)
    edited = [materialize(view) for view in editable_parameters(parameters)]

    assert {p.key for p in system} | {p.key for p in edited} == {p.key for p in parameters}
    assert {p.key for p in system}.isdisjoint({p.key for p in edited})
