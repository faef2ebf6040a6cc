"""Utilities package."""

from gsstudio.utils.cancellation import CancellationToken
from gsstudio.utils.coords import (
    DisplayRect,
    Prompt,
    display_to_source,
    source_to_display,
    source_to_network,
    network_to_source,
    mask_to_original,
)
from gsstudio.utils.logger import get_logger, LOG_LEVELS

__all__ = ['CancellationToken', 'DisplayRect', 'Prompt', 'display_to_source', 'source_to_display',
           'source_to_network', 'network_to_source', 'mask_to_original', 'get_logger', 'LOG_LEVELS']
