"""Shared fixtures for the test suite."""

import pytest

from funcapp_inventory.parsing import parse_function_app


@pytest.fixture
def make_record():
    """Build a FunctionAppRecord from keyword overrides on a minimal raw dict."""
    def _make(app_settings=None, **fields):
        raw = {
            "subscriptionId": "00000000-0000-0000-0000-000000000001",
            "resourceGroup": "rg-functions",
            "name": "func-app",
            "location": "eastus",
            "kind": "functionapp",
            "appSettings": app_settings or {},
        }
        raw.update(fields)
        return parse_function_app(raw)
    return _make
