from abc import abstractmethod

from fastapi import FastAPI
from loguru import logger
import uvicorn

from admitd.config import ServerConfig


class WebServer:
    """Async web server for admission webhook using FastAPI."""

    def __init__(self, config: ServerConfig):
        self.config = config
        self.app = FastAPI(debug=config.debug)
        self._setup_routes()

    @abstractmethod
    def _setup_routes(self):
        """
        Setup web routes.
        Example:
        self.app.add_api_route('/route', self.handle_route, methods=["POST"])
        """
        raise NotImplementedError()

    def uvicorn_kwargs(self) -> dict:
        """Binding and TLS options for uvicorn.run."""
        kwargs = {}

        if self.config.uds_path:
            logger.info(f"Starting admission webhook server on Unix socket {self.config.uds_path}")
            kwargs["uds"] = self.config.uds_path
        else:
            logger.info(
                f"Starting admission webhook server on {self.config.bind_address}:{self.config.port}"
            )
            kwargs["host"] = self.config.bind_address
            kwargs["port"] = self.config.port
            # Apply TLS if configured for TCP
            if self.config.tls_cert_path and self.config.tls_key_path:
                kwargs["ssl_certfile"] = str(self.config.tls_cert_path)
                kwargs["ssl_keyfile"] = str(self.config.tls_key_path)
                logger.info("TLS enabled")

        return kwargs

    def run(self):
        """Run the webhook server."""
        uvicorn.run(
            self.app,
            log_level="debug" if self.config.debug else "info",
            **self.uvicorn_kwargs(),
        )
