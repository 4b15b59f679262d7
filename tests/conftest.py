# conftest.py
"""
Shared test fixtures for the admission webhook tests
"""

import base64
import json
import os

import pytest
from fastapi.testclient import TestClient

from admitd.admission.admission_controller import AdmissionController
from admitd.admission.engine import DecisionEngine
from admitd.config import AdmissionConfig
from admitd.services.admission import AdmissionServer


@pytest.fixture(autouse=True)
def env():
    original_env = os.environ.copy()

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def decision_engine() -> DecisionEngine:
    return DecisionEngine()


@pytest.fixture
def admission_controller() -> AdmissionController:
    """Create admission controller instance for testing."""
    return AdmissionController()


@pytest.fixture
def admission_config() -> AdmissionConfig:
    return AdmissionConfig()


@pytest.fixture
def admission_client(admission_config):
    server = AdmissionServer(admission_config)
    with TestClient(server.app) as client:
        yield client


@pytest.fixture
def failing_widget():
    """Create a resource that asks to fail validation."""
    return {
        "apiVersion": "example.com/v1",
        "kind": "Widget",
        "metadata": {
            "name": "failing-widget",
            "namespace": "default",
        },
        "spec": {
            "fail_validation": True,
            "replicas": 2,
        },
    }


@pytest.fixture
def passing_widget():
    """Create a resource that passes validation."""
    return {
        "apiVersion": "example.com/v1",
        "kind": "Widget",
        "metadata": {
            "name": "passing-widget",
            "namespace": "default",
            "labels": {
                "app": "widget"
            },
        },
        "spec": {
            "fail_validation": False,
            "replicas": 2,
        },
    }


@pytest.fixture
def config_map():
    """Create a resource without a spec section."""
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {
            "name": "settings"
        },
        "data": {
            "key": "value"
        },
    }


@pytest.fixture
def admission_review_template():
    """Create an admission review template."""
    return {
        "apiVersion": "admission.k8s.io/v1",
        "kind": "AdmissionReview",
        "request": {
            "uid": "test-uid-123",
            "kind": {"group": "example.com", "version": "v1", "kind": "Widget"},
            "operation": "CREATE",
            "object": None  # To be filled by specific tests
        }
    }


def create_request(resource_object, uid="test-uid-123", operation="CREATE"):
    """Helper function to create an AdmissionReview."""
    return {
        "apiVersion": "admission.k8s.io/v1",
        "kind": "AdmissionReview",
        "request": {
            "uid": uid,
            "object": resource_object,
            "operation": operation
        }
    }


def create_body(resource_object, uid="test-uid-123", operation="CREATE") -> bytes:
    return json.dumps(create_request(resource_object, uid=uid, operation=operation)).encode("utf-8")


def decode_patch(response: dict) -> list:
    """Decode the base64 patch field of an admission response."""
    return json.loads(base64.b64decode(response["patch"]))
