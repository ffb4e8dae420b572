"""
Service layer for gitqueue.

Services orchestrate domain objects and infrastructure:
- QueueService: create / next / done operations addressed by queue name
"""

from .queue_service import QueueService, JobResult, NextJobResult

__all__ = [
    'QueueService',
    'JobResult',
    'NextJobResult',
]
