#!/usr/bin/env python3
"""
Logging configuration for the reservation sync core.

Console output plus rotating log files; verbosity follows production mode.
"""

import logging
import logging.handlers
import os
from datetime import datetime
from typing import Optional

from infrastructure.settings import AppSettings, get_settings

# Loggers whose output also goes to the dedicated sync log
SYNC_LOGGERS = (
    'SyncCoordinator',
    'UpdateOrchestrator',
    'ConflictResolver',
)

COMPONENT_LOGGERS = SYNC_LOGGERS + (
    'ReservationRepository',
    'InMemoryDocumentStore',
    'FirestoreDocumentStore',
)


def setup_logging(settings: Optional[AppSettings] = None) -> None:
    """
    Set up console and rotating file handlers.

    Clears previous handlers on the root logger so repeated calls do not
    duplicate output.
    """
    settings = settings or get_settings()
    production_mode = settings.production_mode
    log_dir = settings.log_directory

    os.makedirs(log_dir, exist_ok=True)

    main_log_file = os.path.join(log_dir, 'salon.log')
    error_log_file = os.path.join(log_dir, 'salon_errors.log')
    sync_log_file = os.path.join(log_dir, 'sync.log')

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.WARNING if production_mode else logging.DEBUG)
    root_logger.handlers = []

    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d in %(funcName)s()] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING if production_mode else logging.INFO)
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    main_file_handler = logging.handlers.RotatingFileHandler(
        main_log_file,
        maxBytes=10*1024*1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    main_file_handler.setLevel(logging.WARNING if production_mode else logging.INFO)
    main_file_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(main_file_handler)

    error_file_handler = logging.handlers.RotatingFileHandler(
        error_log_file,
        maxBytes=5*1024*1024,  # 5MB
        backupCount=5,
        encoding='utf-8'
    )
    error_file_handler.setLevel(logging.ERROR)
    error_file_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(error_file_handler)

    sync_handler = logging.handlers.RotatingFileHandler(
        sync_log_file,
        maxBytes=20*1024*1024,  # 20MB
        backupCount=5,
        encoding='utf-8'
    )
    sync_handler.setLevel(logging.INFO if production_mode else logging.DEBUG)
    sync_handler.setFormatter(detailed_formatter)

    for name in SYNC_LOGGERS:
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            if isinstance(handler, logging.handlers.RotatingFileHandler):
                logger.removeHandler(handler)
                handler.close()
        logger.addHandler(sync_handler)

    component_level = logging.INFO if production_mode else logging.DEBUG
    for name in COMPONENT_LOGGERS:
        logging.getLogger(name).setLevel(component_level)

    # Reduce noise from external libraries
    logging.getLogger('google').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('grpc').setLevel(logging.WARNING)

    root_logger.info("=" * 80)
    root_logger.info(f"Salon sync logging initialized - {datetime.now()}")
    root_logger.info(f"Production Mode: {'ON' if production_mode else 'OFF'}")
    root_logger.info(f"Main log: {main_log_file}")
    root_logger.info(f"Error log: {error_log_file}")
    root_logger.info(f"Sync log: {sync_log_file}")
    root_logger.info("=" * 80)

