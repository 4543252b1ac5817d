"""Utility modules for Screener."""

from .logger import get_logger, PipelineLogger

__all__ = ['get_logger', 'PipelineLogger']
