"""
Logging configuration.
"""

from shared.config.logging import get_logger, mask_rpc_payload, setup_logging

__all__ = ["get_logger", "mask_rpc_payload", "setup_logging"]
