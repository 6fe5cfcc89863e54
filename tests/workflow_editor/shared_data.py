from __future__ import annotations

import logging
from typing import Any, Dict

WORKFLOW_ID = "wpid_123"
BASE_URL = "http://workflows.test/api/v1"
API_KEY = "test-api-key"

_TIMESTAMPS = {
    "created_at": "2024-05-01T09:00:00",
    "modified_at": "2024-05-02T09:00:00",
    "deleted_at": None,
}

K1_PARAMETER: Dict[str, Any] = {
    "workflow_parameter_id": "wp_1",
    "workflow_id": "w_1",
    "key": "k1",
    "parameter_type": "workflow",
    "workflow_parameter_type": "string",
    "default_value": None,
    "description": None,
    **_TIMESTAMPS,
}

SECRET1_PARAMETER: Dict[str, Any] = {
    "aws_secret_parameter_id": "asp_1",
    "workflow_id": "w_1",
    "key": "secret1",
    "parameter_type": "aws_secret",
    "aws_key": "SECRET_1",
    "description": "Portal API token",
    **_TIMESTAMPS,
}

WORKFLOW_RECORD: Dict[str, Any] = {
    "workflow_id": "w_1",
    "organization_id": "o_1",
    "workflow_permanent_id": WORKFLOW_ID,
    "version": 3,
    "title": "Invoice download",
    "description": "Downloads the latest invoices",
    "proxy_location": "RESIDENTIAL",
    "webhook_callback_url": "https://hooks.example.com/done",
    "totp_verification_url": None,
    "is_saved_task": False,
    **_TIMESTAMPS,
    "workflow_definition": {
        "parameters": [K1_PARAMETER, SECRET1_PARAMETER],
        "blocks": [
            {
                "label": "A",
                "block_type": "task",
                "url": "https://portal.example.com",
                "title": "Open portal",
                "navigation_goal": "Log in and open the invoices page",
                "parameters": [K1_PARAMETER],
                "output_parameter": {"key": "A_output", "parameter_type": "output"},
            },
            {
                "label": "B",
                "block_type": "text_prompt",
                "llm_key": "OPENAI_GPT4O",
                "prompt": "Summarize the invoices",
                "parameters": [],
                "output_parameter": {"key": "B_output", "parameter_type": "output"},
            },
        ],
    },
}


def configure_workflow_test_logging() -> None:
    logging.getLogger("httpx").setLevel(logging.WARNING)
