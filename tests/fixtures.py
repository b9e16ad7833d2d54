"""Shared test data and helpers for the tool-docs test suite."""

import json
from pathlib import Path
from unittest.mock import MagicMock


def make_llm_response(text: str) -> MagicMock:
    """Mimic openhands LLMResponse: .message.content is a list of text blocks."""
    response = MagicMock()
    block = MagicMock()
    block.text = text
    response.message.content = [block]
    return response


def write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))
    return path


SAMPLE_BRANDS = {
    "aks": "azure-kubernetes-service",
    "acr": "azure-container-registry",
    "appservice": "azure-app-service",
}

SAMPLE_COMPOUND_WORDS = {
    "nodepool": "node-pool",
    "resourcegroup": "resource-group",
    "webapp": "web-app",
}

SAMPLE_STOP_WORDS = ["azure"]

SAMPLE_BRAND_ROWS = [
    {"brandName": "Azure Key Vault", "mcpServerName": "keyvault", "shortName": "Key Vault", "fileName": "key-vault"},
    {"brandName": "Azure Kubernetes Service", "mcpServerName": "aks", "shortName": "AKS", "fileName": "azure-kubernetes-service"},
    {"brandName": "Azure Storage", "mcpServerName": "storage", "shortName": "Storage", "fileName": ""},
]

SAMPLE_CLI_OUTPUT = {
    "version": "1.2.3",
    "results": [
        {
            "name": "create",
            "command": "keyvault secret create",
            "description": "Create a secret in a key vault",
            "option": [
                {"name": "vault-name", "type": "string", "required": True, "description": "The name of the key vault"},
                {"name": "--subscription", "type": "string", "required": False, "description": "Subscription ID"},
                {"name": "secret-value", "type": "string", "required": False, "description": "Value of the secret"},
            ],
            "metadata": {
                "destructive": {"value": True, "description": "Creates data"},
                "idempotent": {"value": False, "description": ""},
                "openWorld": {"value": False, "description": ""},
                "readOnly": {"value": False, "description": ""},
                "secret": {"value": True, "description": "Handles secrets"},
                "localRequired": {"value": False, "description": ""},
            },
        },
        {
            "name": "list",
            "command": "keyvault secret list",
            "description": "List secrets in a key vault",
            "option": [
                {"name": "vault-name", "type": "string", "required": True, "description": "The name of the key vault"},
            ],
        },
        {
            "name": "get",
            "command": "aks nodepool get",
            "description": "Get details of a node pool",
            "option": [
                {"name": "cluster", "type": "string", "required": True, "description": "Cluster name"},
                {"name": "nodepool", "type": "string", "required": True, "description": "Node pool name"},
            ],
        },
    ],
}

SAMPLE_EXAMPLE_PROMPTS_JSON = {
    "create": [
        "Create a secret named 'db-password' in key vault 'contoso-kv'",
        "Add a new secret to my vault 'prod-kv' with value 'abc123'",
    ]
}

SAMPLE_FAMILY_METADATA = """```markdown
---
title: Azure Key Vault tools
ms.topic: reference
---

# Azure Key Vault tools for the Azure MCP Server

Use these tools to manage secrets.
```"""

SAMPLE_RELATED = "## Related content\n\n- [Key Vault docs](https://learn.microsoft.com/azure/key-vault/)"
