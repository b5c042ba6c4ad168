"""
REST API layer for cronspine.

FastAPI application factory with typed endpoints that delegate to the
operations layer (``cronspine.ops``). This package handles only HTTP
transport concerns: serialisation, error mapping and request context.

Quick start::

    from cronspine.api import create_app

    app = create_app()  # ready for uvicorn

Tags:
    cronspine, api, REST, FastAPI, transport-layer

Doc-Types:
    api-reference
"""

from cronspine.api.app import create_app

__all__ = ["create_app"]
