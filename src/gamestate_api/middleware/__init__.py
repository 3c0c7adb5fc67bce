"""Middleware wrapped around the router: access logging and the CORS hook."""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .cors import CORSMiddleware
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "CORSMiddleware",
    "LoggingMiddleware",
    "RequestLog",
]
