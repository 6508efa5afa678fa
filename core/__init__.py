"""
Core package of the Z.AI reasoning transformer HTTP sidecar.
Importing this package ensures all route modules are loaded so route
definitions attach to the shared FastAPI application.
"""

# Import order matters: ensure app state is initialized before routes.
from . import app_state  # noqa: F401

# Route modules register themselves upon import.
from . import transform_routes  # noqa: F401
