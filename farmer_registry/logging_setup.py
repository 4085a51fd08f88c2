# Logging Setup
"""Logging configuration for the farmer registry."""

import logging

def _resolve_level(level_name):
    return getattr(logging, str(level_name).upper(), logging.INFO)

def configure_logging(app):
    """Configure root logging from ``LOG_LEVEL`` with a concise format."""
    level = _resolve_level(app.config.get('LOG_LEVEL', 'INFO'))
    formatter = logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s')
    root_logger = logging.getLogger()

    if root_logger.handlers:
        root_logger.setLevel(level)
        for handler in root_logger.handlers:
            handler.setLevel(level)
            handler.setFormatter(formatter)
        return

    logging.basicConfig(level=level)
    for handler in logging.getLogger().handlers:
        handler.setFormatter(formatter)
