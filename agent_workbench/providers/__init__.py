"""
Coding-agent CLI discovery.

- catalog: built-in CLI definitions, status/message resolvers, YAML loading
- prober: runs each definition's candidates and classifies the result
"""

from .catalog import (
    DEFAULT_CATALOG,
    CliDefinition,
    ProbeResult,
    load_catalog_file,
    merge_catalogs,
)
from .prober import CliCapabilityProber

__all__ = [
    "CliCapabilityProber",
    "CliDefinition",
    "DEFAULT_CATALOG",
    "ProbeResult",
    "load_catalog_file",
    "merge_catalogs",
]
