import asyncio
import re
import sys
from typing import Optional

from fastapi import HTTPException, Query, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from loguru import logger

from admitd.admission.admission_controller import AdmissionController, Deadline
from admitd.config import AdmissionConfig
from admitd.exceptions import ConversionError, DeadlineExceeded, DecodeError, EncodeError
from admitd.models import AdmissionMode
from admitd.responses import HealthResponse
from admitd.server import WebServer


_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}

# Client Closed Request, as nginx logs it
CLIENT_CLOSED_REQUEST = 499


def parse_duration(value: Optional[str]) -> Optional[float]:
    """Parse a Go-style duration such as ``10s`` or ``1m30s`` into seconds.

    Returns None for anything unparseable.
    """
    if not value:
        return None
    value = value.strip()
    parts = _DURATION_PART.findall(value)
    if not parts or "".join(number + unit for number, unit in parts) != value:
        return None
    return sum(float(number) * _DURATION_UNITS[unit] for number, unit in parts)


class AdmissionServer(WebServer):
    """Serves the validating and mutating admission webhooks."""

    def __init__(self, config: AdmissionConfig, controller: Optional[AdmissionController] = None):
        self.controller = controller or AdmissionController()
        super().__init__(config)

    def _setup_routes(self):
        """Setup web routes."""
        self.app.add_api_route(
            self.config.validation_path,
            self.validate,
            methods=["POST"],
            summary="Validating admission webhook",
        )
        self.app.add_api_route(
            self.config.mutation_path,
            self.mutate,
            methods=["POST"],
            summary="Mutating admission webhook",
        )
        self.app.add_api_route(
            "/health",
            self.health,
            methods=["GET"],
            response_model=HealthResponse,
            summary="Health check",
        )

    async def health(self) -> HealthResponse:
        return HealthResponse(status="ok")

    async def validate(
        self,
        request: Request,
        timeout: Optional[str] = Query(None, description="Caller deadline, e.g. 10s"),
    ) -> Response:
        return await self._review(request, AdmissionMode.VALIDATE, timeout)

    async def mutate(
        self,
        request: Request,
        timeout: Optional[str] = Query(None, description="Caller deadline, e.g. 10s"),
    ) -> Response:
        return await self._review(request, AdmissionMode.MUTATE, timeout)

    def _deadline(self, timeout: Optional[str]) -> Deadline:
        seconds = self.config.request_timeout_seconds
        requested = parse_duration(timeout)
        if requested is not None:
            seconds = min(seconds, requested)
        return Deadline.after(seconds)

    async def _review(self, request: Request, mode: AdmissionMode, timeout: Optional[str]) -> Response:
        deadline = self._deadline(timeout)

        try:
            body = await asyncio.wait_for(request.body(), timeout=max(deadline.remaining(), 0))
        except asyncio.TimeoutError:
            logger.error("Admission call abandoned: deadline exceeded while reading body")
            raise HTTPException(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                detail="Deadline exceeded while reading request body",
            )

        if await request.is_disconnected():
            logger.warning("Client disconnected before admission review, dropping call")
            return Response(status_code=CLIENT_CLOSED_REQUEST)

        try:
            content = await run_in_threadpool(self.controller.review, body, mode, deadline)
        except (DecodeError, ConversionError) as e:
            logger.warning(f"Rejecting malformed admission request: {e}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except EncodeError as e:
            logger.error(f"Unable to encode admission response: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Unable to encode admission response.",
            )
        except DeadlineExceeded as e:
            logger.error(f"Admission call abandoned: {e}")
            raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(e))

        if await request.is_disconnected():
            logger.warning("Client disconnected during admission review, dropping response")
            return Response(status_code=CLIENT_CLOSED_REQUEST)

        return Response(content=content, media_type="application/json")


def configure_logging(debug: bool = False) -> None:
    """Send loguru output to stderr at INFO, or DEBUG when ``debug`` is set."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else "INFO")


def run(config: Optional[AdmissionConfig] = None):
    """Main entry point."""
    try:
        config = config or AdmissionConfig()

        configure_logging(config.debug)
        if config.debug:
            logger.debug("Debug mode enabled")
            logger.debug(f"Configuration: {config.export_json()}")

        if not config.uds_path and (not config.tls_cert_path or not config.tls_key_path):
            logger.warning("TLS certificates not configured, running in insecure mode")

        server = AdmissionServer(config)
        server.run()

    except Exception as e:
        logger.exception(f"Failed to start admission controller: {e}")
        raise


if __name__ == "__main__":
    run()
