"""
Argot XML-RPC Package.

This package contains the XML-RPC value model, the method call and
response envelopes, and an HTTP client for sending calls.
"""

__version__ = "0.1.0"

from .values import (
    XmlRpcArrayValue,
    XmlRpcScalarValue,
    XmlRpcScalarValueType,
    XmlRpcStructureMember,
    XmlRpcStructureValue,
    XmlRpcValue,
    XmlSerializable,
    compare_sequence,
    scalar_type_as_string,
    scalar_type_by_name,
    try_parse_value,
)
from .message import XmlRpcMessage
from .response import XmlRpcResponse
from .client import WebRequestOptions, XmlRpcClient, XmlRpcMessageSentEvent

__all__ = [
    "WebRequestOptions",
    "XmlRpcArrayValue",
    "XmlRpcClient",
    "XmlRpcMessage",
    "XmlRpcMessageSentEvent",
    "XmlRpcResponse",
    "XmlRpcScalarValue",
    "XmlRpcScalarValueType",
    "XmlRpcStructureMember",
    "XmlRpcStructureValue",
    "XmlRpcValue",
    "XmlSerializable",
    "compare_sequence",
    "scalar_type_as_string",
    "scalar_type_by_name",
    "try_parse_value",
]
