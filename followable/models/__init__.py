from .follow_model import Follow

__all__ = ["Follow"]
