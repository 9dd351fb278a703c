# app/core/exceptions.py


class NotFoundError(ValueError):
    """A referenced record does not exist. Routers answer 404 instead of 400."""
