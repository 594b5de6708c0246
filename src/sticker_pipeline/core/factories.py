"""Factory classes for creating configured service instances."""

import logging
from typing import Callable, Optional

from .logging_config import setup_logger
from .observability import MetricsCollector, StructuredLogger
from .profiles import DEFAULT_PROFILE_ID, get_profile
from .protocols import LoggerProtocol, TransformerProtocol
from .services import ManifestService, OptimizeService, utc_timestamp
from .transformer import transform


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(name: str, level: Optional[int] = None) -> LoggerProtocol:
        """Create a configured structured logger."""
        logger = setup_logger(name)
        if level is not None:
            logger.setLevel(level)
        return StructuredLogger(logger)


class PipelineFactory:
    """Factory for creating the two stage services."""

    @staticmethod
    def create_optimize_service(
        profile_id: str = DEFAULT_PROFILE_ID,
        logger: Optional[LoggerProtocol] = None,
        transformer: Optional[TransformerProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
        debug: bool = False,
    ) -> OptimizeService:
        """Create an optimize service for a registered profile."""
        if logger is None:
            logger = LoggerFactory.create_logger(
                "sticker-pipeline.optimize", logging.DEBUG if debug else None
            )
        return OptimizeService(
            profile=get_profile(profile_id),
            logger=logger,
            transformer=transformer or transform,
            metrics_collector=metrics_collector,
        )

    @staticmethod
    def create_manifest_service(
        logger: Optional[LoggerProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
        clock: Optional[Callable[[], str]] = None,
        debug: bool = False,
    ) -> ManifestService:
        """Create a manifest service; ``clock`` supplies createdAt timestamps."""
        if logger is None:
            logger = LoggerFactory.create_logger(
                "sticker-pipeline.manifest", logging.DEBUG if debug else None
            )
        return ManifestService(
            logger=logger,
            metrics_collector=metrics_collector,
            clock=clock or utc_timestamp,
        )
