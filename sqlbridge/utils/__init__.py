"""Utility functions and classes for sqlbridge."""

from sqlbridge.utils import logging, module_loader, type_guards

__all__ = ("logging", "module_loader", "type_guards")
