# Shared Common Library for the scheduling platform.
# This package contains shared authentication, exceptions, middleware,
# pagination and model mixins used across services.

__version__ = "1.0.0"
