"""Shared Kernel Interfaces"""

from src.service.shared_kernel.app.interface.i_catalog_query_handler import (
    ICatalogQueryHandler,
)
from src.service.shared_kernel.app.interface.i_clock import IClock

__all__ = ['ICatalogQueryHandler', 'IClock']
