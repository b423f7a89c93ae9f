"""Middleware package for FastAPI application"""
from nestcam.middleware.logging_middleware import RequestLoggingMiddleware

__all__ = ['RequestLoggingMiddleware']
