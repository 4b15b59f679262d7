import json

import pytest
from pydantic import ValidationError

from admitd.admission.decoder import decode_request
from admitd.exceptions import DecodeError
from conftest import create_body


def test_decode_admission_review(passing_widget):
    decoded = decode_request(create_body(passing_widget, uid="review-uid"))

    assert decoded.is_review is True
    assert decoded.api_version == "admission.k8s.io/v1"
    assert decoded.kind == "AdmissionReview"
    assert decoded.request.uid == "review-uid"
    assert decoded.request.operation == "CREATE"
    assert decoded.request.raw_object == passing_widget


def test_decode_bare_request_with_upper_case_uid():
    body = json.dumps({"UID": "u1", "object": {"spec": {"fail_validation": True}}}).encode()

    decoded = decode_request(body)

    assert decoded.is_review is False
    assert decoded.api_version is None
    assert decoded.request.uid == "u1"
    assert decoded.request.raw_object == {"spec": {"fail_validation": True}}


def test_decode_request_kind_and_old_object():
    body = json.dumps({
        "uid": "delete-uid",
        "kind": {"group": "", "version": "v1", "kind": "ConfigMap"},
        "operation": "DELETE",
        "oldObject": {"kind": "ConfigMap"},
        "dryRun": True,
    }).encode()

    request = decode_request(body).request

    assert request.kind.kind == "ConfigMap"
    assert request.raw_object is None
    assert request.raw_old_object == {"kind": "ConfigMap"}
    assert request.dry_run is True


@pytest.mark.parametrize("body", [b"not-json", b"", b"{\"uid\": ", b"\xff\xfe\x00"])
def test_malformed_json_raises_decode_error(body):
    with pytest.raises(DecodeError):
        decode_request(body)


@pytest.mark.parametrize("body", [b"[]", b"\"not-json\"", b"42", b"null"])
def test_non_object_body_raises_decode_error(body):
    with pytest.raises(DecodeError, match="must be a JSON object"):
        decode_request(body)


def test_missing_uid_raises_decode_error():
    with pytest.raises(DecodeError, match="not a valid admission request"):
        decode_request(b'{"object": {}}')


def test_review_without_request_raises_decode_error():
    body = json.dumps({"apiVersion": "admission.k8s.io/v1", "kind": "AdmissionReview", "request": None})

    with pytest.raises(DecodeError, match="carries no request"):
        decode_request(body.encode())


def test_decoded_request_is_immutable(passing_widget):
    request = decode_request(create_body(passing_widget)).request

    with pytest.raises(ValidationError):
        request.uid = "other"
