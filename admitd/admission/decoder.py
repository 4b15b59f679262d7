import json
from typing import Any

from pydantic import ValidationError

from admitd.exceptions import DecodeError
from admitd.models import AdmissionRequest, AdmissionReview, DecodedRequest


def decode_request(body: bytes) -> DecodedRequest:
    """Parse an inbound body into an admission request.

    Accepts an AdmissionReview envelope or a bare AdmissionRequest object.
    """
    try:
        payload: Any = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"Request body is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise DecodeError(f"Request body must be a JSON object, got {type(payload).__name__}")

    try:
        if "request" in payload:
            review = AdmissionReview.model_validate(payload)
            if review.request is None:
                raise DecodeError("AdmissionReview carries no request")
            return DecodedRequest(
                request=review.request,
                api_version=review.api_version,
                kind=review.kind,
            )

        return DecodedRequest(request=AdmissionRequest.model_validate(payload))
    except ValidationError as e:
        raise DecodeError(f"Request body is not a valid admission request: {e}") from e
