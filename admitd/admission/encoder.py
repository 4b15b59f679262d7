import base64

from pydantic import ValidationError

from admitd.exceptions import EncodeError
from admitd.models import (
    AdmissionResponse,
    AdmissionReview,
    Decision,
    DecodedRequest,
    PatchType,
)


def build_response(uid: str, decision: Decision) -> AdmissionResponse:
    """Assemble the response for one decision, correlated by ``uid``."""
    patch = None
    patch_type = None
    if decision.patch:
        # The patch field is []byte on the wire: base64 of the JSON document, encoded once.
        patch = base64.b64encode(decision.patch_document).decode("utf-8")
        patch_type = decision.patch_type or PatchType.JSON_PATCH

    try:
        return AdmissionResponse(
            uid=uid,
            allowed=decision.allowed,
            result=decision.result,
            patch=patch,
            patch_type=patch_type,
        )
    except ValidationError as e:
        raise EncodeError(f"Unable to build admission response: {e}") from e


def encode_response(decoded: DecodedRequest, decision: Decision) -> bytes:
    """Serialize the response in the same envelope shape the request arrived in."""
    response = build_response(decoded.request.uid, decision)

    try:
        if decoded.is_review:
            review = AdmissionReview(
                api_version=decoded.api_version,
                kind=decoded.kind,
                response=response,
            )
            return review.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")

        return response.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise EncodeError(f"Unable to serialize admission response: {e}") from e
