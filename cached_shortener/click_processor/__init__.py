"""
Background processing of clicks recorded on the cache-hit redirect path.
"""

from .click_worker import ClickWorker

__all__ = ["ClickWorker"]
