"""
fhircache - caching and retrieval layer in front of a FHIR REST API.
"""

__version__ = "0.1.0"
