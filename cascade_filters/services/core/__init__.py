from .lookup_cache import LookupCache
from .request_sequencer import RequestSequencer
from .url_codec import UrlCodec

__all__ = [
    'LookupCache',
    'RequestSequencer',
    'UrlCodec',
]
