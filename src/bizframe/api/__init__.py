"""
FastAPI integration for bizframe.

Quick start::

    from bizframe.api import create_app
    from bizframe.api.deps import Registry

    app = create_app()

    @app.get("/orders")
    def orders(registry: Registry):
        return registry.load_structured(registry.path_for("shop.Orders"))

Tags:
    bizframe, api, FastAPI, transport-layer

Doc-Types:
    api-reference
"""

from bizframe.api.app import create_app

__all__ = ["create_app"]
