from .actor import ActorMiddleware

__all__ = ["ActorMiddleware"]
