"""Application package for the layered CRUD backend.

This package exposes the controller, service, repository and model
modules used by the FastAPI application. Requests flow from the
controllers in `main` through `services` into `repositories`; the
individual modules contain the concrete implementations.
"""
