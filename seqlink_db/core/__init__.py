from .DBHandler import DBHandler  # noqa: F401
