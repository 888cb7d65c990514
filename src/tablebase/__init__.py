"""TableBase - Dynamic table engine.

User-defined tables with typed columns, validated rows and
owner/visibility based access, served over a REST API.
"""

__version__ = "0.1.0"

from tablebase.infrastructure.api.app import app

__all__ = ["app", "__version__"]
