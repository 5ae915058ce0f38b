from . import training

__all__ = ["training"]
