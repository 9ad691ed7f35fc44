from .sinks import BaseSink

__all__ = ["BaseSink"]
