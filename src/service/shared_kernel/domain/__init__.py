"""Shared Kernel Domain Layer"""

from src.service.shared_kernel.domain.entity.principal_entity import Principal

__all__ = ['Principal']
