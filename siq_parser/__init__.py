"""
SIQ Package Parser
==================
Ingestion pipeline for compressed quiz packages (.siq): an XML question
tree plus loosely organized media assets.

Architecture:
    - Archive Reader: Opens the zip container and lists/reads entries
    - Candidate Index: Normalized path and basename lookup tables
    - Media Resolver: Ordered fallback chain from XML references to entries
    - Schema Adapter: Modern params and legacy scenario content shapes
    - Classifiers: Content typing, special question types, select options
    - Engine: Walks rounds → themes → questions into the final question set

Version: 1.0.0
"""

__version__ = "1.0.0"

from .engine import ParserConfig, ParserEngine, parse_package  # noqa: E402
from .exceptions import InvalidFormatError, PackageError  # noqa: E402

__all__ = [
    "InvalidFormatError",
    "PackageError",
    "ParserConfig",
    "ParserEngine",
    "parse_package",
]
