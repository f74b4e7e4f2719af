"""Failures raised by the document engine.

The engine never knows about tool error kinds; the dispatch layer classifies
these exceptions at the handler boundary.
"""

from __future__ import annotations


class EngineError(RuntimeError):
    """Base class for document engine failures."""


class EncryptedDocumentError(EngineError):
    """The document is password protected."""


class UnsupportedFeatureError(EngineError):
    """The engine cannot read or write the requested format or feature."""


class MalformedDocumentError(EngineError):
    """The bytes look like a document but could not be interpreted."""


class EngineInputError(EngineError):
    """The engine rejected a caller supplied value (page number, image bytes...)."""
