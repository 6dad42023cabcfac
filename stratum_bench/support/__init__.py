"""
Benchmark support package

Collaborators the benchmark client consumes but does not own: error types,
version reporting, CPU introspection for the create payload, and the
reference-hash table used to judge a finished run.

Exports
-------
__version__ : str
    Semantic version string reported to the benchmark service.
"""

from .version import __version__  # re-export

__all__ = ["__version__"]
