"""Signal normalization into protocol events."""

from .markup import DEFAULT_MARKUP_TAGS, InlineToolMarkupFilter
from .normalizer import NODE_ERROR_EVENT, EventNormalizer, NormalizerPolicy
from .transcript import TranscriptCollector

__all__ = [
    "DEFAULT_MARKUP_TAGS",
    "NODE_ERROR_EVENT",
    "EventNormalizer",
    "InlineToolMarkupFilter",
    "NormalizerPolicy",
    "TranscriptCollector",
]
