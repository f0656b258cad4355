"""
Base service class
"""

from abc import ABC


class BaseService(ABC):
    """
    Base class for services backing the chat pipeline.

    Services wrap store/account state the pipeline consults but does not own.
    """
    pass
