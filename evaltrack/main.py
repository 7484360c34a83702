"""
Main entry point for the EvalTrack platform.
"""

import argparse
import logging
from typing import Any, Dict, Optional

from .api.rest_api import EvalTrackRestAPI
from .config import load_config
from .core.exceptions import ConfigurationError
from .persistence import ClassRepository, JsonSnapshotStore, StudentRepository
from .services import EnrollmentService, SchedulerService

logger = logging.getLogger(__name__)


class EvalTrackPlatform:
    """Main platform class that wires repositories, services and the API."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self._config = load_config(overrides=config)
        self._snapshot_store: Optional[JsonSnapshotStore] = None
        self._enrollment_service: Optional[EnrollmentService] = None
        self._scheduler_service: Optional[SchedulerService] = None
        self._rest_api: Optional[EvalTrackRestAPI] = None

        self._initialize_platform()

    @property
    def config(self) -> Dict[str, Any]:
        return dict(self._config)

    @property
    def enrollment_service(self) -> EnrollmentService:
        return self._enrollment_service

    @property
    def scheduler_service(self) -> SchedulerService:
        return self._scheduler_service

    @property
    def app(self):
        """The FastAPI application."""
        return self._rest_api.app

    def _initialize_platform(self):
        """Initialize the platform with all services."""
        logger.info("Initializing EvalTrack platform...")

        if self._config['persist']:
            self._snapshot_store = JsonSnapshotStore(self._config['data_file'])
            logger.info("Snapshot store initialized: %s", self._config['data_file'])

        self._enrollment_service = EnrollmentService(
            StudentRepository(),
            ClassRepository(),
            snapshot_store=self._snapshot_store,
            highlight_threshold=self._config['discrepancy_threshold']
        )
        self._enrollment_service.load()
        self._scheduler_service = SchedulerService()
        logger.info("Services initialized")

        self._rest_api = EvalTrackRestAPI(
            self._enrollment_service,
            self._scheduler_service,
            cors_origins=self._config['cors_origins']
        )
        logger.info("EvalTrack platform initialized successfully")

    def run(self):
        """Serve the REST API until interrupted."""
        import uvicorn

        host = self._config['host']
        port = self._config['port']
        logger.info("Starting REST server on http://%s:%s (docs at /docs)", host, port)
        try:
            uvicorn.run(self.app, host=host, port=port, log_level=self._config['log_level'].lower())
        finally:
            self.shutdown()

    def shutdown(self):
        """Flush pending snapshot writes."""
        if self._snapshot_store is not None:
            self._snapshot_store.close()
            logger.info("Snapshot store closed")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="EvalTrack classroom evaluation server")
    parser.add_argument("--host", type=str, help="Bind address")
    parser.add_argument("--port", type=int, help="REST server port")
    parser.add_argument("--data-file", dest="data_file", type=str, help="JSON snapshot path")
    parser.add_argument("--no-persist", dest="persist", action="store_const", const=False,
                        help="Keep data in memory only")
    parser.add_argument("--log-level", dest="log_level", type=str, help="Logging level")
    parser.add_argument("--config", type=str, help="Configuration file path")

    args = parser.parse_args()
    overrides = {key: value for key, value in vars(args).items() if key != "config"}

    try:
        config = load_config(args.config, overrides)
    except ConfigurationError as e:
        parser.error(e.message)

    logging.basicConfig(
        level=config['log_level'].upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    platform = EvalTrackPlatform(config)
    platform.run()


if __name__ == "__main__":
    main()
