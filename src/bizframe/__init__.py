"""
bizframe - request-scoped service registry for web application frameworks.

- bizframe.core: registry, sessions, connections, resources
- bizframe.api: FastAPI integration
- bizframe.cli: ``bizframe`` command line
"""

__version__ = "0.1.0"
