"""
A reverse proxy that answers from local substitution files when present.
"""

from .server import ProxyServer
from .handler import RequestHandler
from .forwarder import UpstreamForwarder
from .substitution import SubstitutionResolver
from .models import HTTPRequest, HTTPResponse, Outcome, RequestOutcome
from .config import ConfigError, ProxyConfig

__all__ = [
    'ProxyServer', 'RequestHandler', 'UpstreamForwarder', 'SubstitutionResolver',
    'HTTPRequest', 'HTTPResponse', 'Outcome', 'RequestOutcome',
    'ConfigError', 'ProxyConfig'
]
