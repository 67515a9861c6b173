# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Bidirectional one-to-many relation index over typed identifiers."""

from .component import Component, ComponentStore, InMemoryComponent, KeyedSetView
from .config import Config, ConfigurationError
from .ids import Id, ValidId
from .logging_setup import StructuredFormatter, setup_logging
from .relation import InvariantError, OneToMany

__version__ = "0.1.0"

__all__ = [
    "OneToMany",
    "InvariantError",
    "Id",
    "ValidId",
    "ComponentStore",
    "InMemoryComponent",
    "Component",
    "KeyedSetView",
    "Config",
    "ConfigurationError",
    "StructuredFormatter",
    "setup_logging",
]
