"""Application package for the Lexo children's learning backend.

This package exposes the exercise handlers, repositories, services and
models used by the FastAPI application. Individual modules contain the
concrete implementations and documentation.
"""
