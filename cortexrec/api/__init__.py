"""FastAPI application module for CortexRec.

This module contains the FastAPI application factory, route handlers and
API endpoints for the recommendation service.
"""
