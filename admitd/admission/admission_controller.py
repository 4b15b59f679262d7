import time
from dataclasses import dataclass
from typing import Optional

from loguru import logger as default_logger

from admitd.admission.decoder import decode_request
from admitd.admission.encoder import encode_response
from admitd.admission.engine import DecisionEngine
from admitd.admission.extractor import extract_resource
from admitd.exceptions import DeadlineExceeded
from admitd.models import AdmissionMode


@dataclass(frozen=True)
class Deadline:
    """Point in monotonic time after which the caller has stopped waiting."""

    expires_at: float

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(expires_at=time.monotonic() + seconds)

    def remaining(self) -> float:
        return self.expires_at - time.monotonic()

    def check(self, stage: str) -> None:
        if self.remaining() <= 0:
            raise DeadlineExceeded(f"Deadline exceeded before {stage}")


class AdmissionController:
    """Runs decode, extract, decide and encode for one admission call."""

    def __init__(self, engine: Optional[DecisionEngine] = None, logger=None):
        self.logger = logger or default_logger.bind(component="admission-controller")
        self.engine = engine or DecisionEngine(logger=self.logger)

    def review(self, body: bytes, mode: AdmissionMode, deadline: Optional[Deadline] = None) -> bytes:
        """Return the serialized admission response for ``body``.

        Raises DecodeError or ConversionError for bad input, EncodeError if the
        response cannot be serialized and DeadlineExceeded once ``deadline``
        has passed.
        """
        def checkpoint(stage: str) -> None:
            if deadline is not None:
                deadline.check(stage)

        checkpoint("decode")
        decoded = decode_request(body)
        request = decoded.request

        checkpoint("extract")
        view = extract_resource(request)

        checkpoint("decide")
        decision = self.engine.decide(view, mode)

        self.logger.info(
            f"Admission {mode.value} uid={request.uid} operation={request.operation} "
            f"kind={view.kind} name={view.name} allowed={decision.allowed}"
        )
        if decision.result is not None:
            self.logger.debug(f"Admission {request.uid} status: {decision.result.message}")

        checkpoint("encode")
        return encode_response(decoded, decision)
