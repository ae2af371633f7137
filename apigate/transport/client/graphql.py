"""GraphQL request options and extractors for building backend requests."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

NAMESPACE = "github.com/devopsfaith/krakend/transport/http/client/graphql"


class OperationType(str, Enum):
    """Operations allowed by GraphQL."""

    MUTATION = "mutation"
    QUERY = "query"


class OperationMethod(str, Enum):
    """HTTP method used to send the operation."""

    POST = "POST"
    GET = "GET"


class NoConfigFoundError(Exception):
    """Raised when the extra config has no GraphQL section."""

    def __init__(self, message: str = "graphql: no configuration found") -> None:
        super().__init__(message)


_ESCAPES = {"&": "\\u0026", "<": "\\u003c", ">": "\\u003e", "\u2028": "\\u2028", "\u2029": "\\u2029"}


def _marshal(value: Any) -> str:
    text = json.dumps(value, ensure_ascii=False, separators=(",", ":"), sort_keys=True)
    for char, escaped in _ESCAPES.items():
        text = text.replace(char, escaped)
    return text


@dataclass
class GraphQLRequest:
    """The GraphQL request body."""

    query: str = ""
    operation_name: str = ""
    variables: Optional[Dict[str, Any]] = None

    def to_json(self) -> str:
        parts = [f'"query":{_marshal(self.query)}']
        if self.operation_name:
            parts.append(f'"operationName":{_marshal(self.operation_name)}')
        if self.variables:
            parts.append(f'"variables":{_marshal(self.variables)}')
        return "{" + ",".join(parts) + "}"

    def to_query(self) -> Dict[str, str]:
        values = {"query": self.query}
        if self.operation_name:
            values["operationName"] = self.operation_name
        if self.variables:
            values["variables"] = _marshal(self.variables)
        return values


@dataclass
class Options:
    """A GraphQL request plus how it is to be sent."""

    query: str = ""
    operation_name: str = ""
    variables: Optional[Dict[str, Any]] = None
    query_path: str = ""
    type: Union[OperationType, str] = ""
    method: OperationMethod = OperationMethod.POST

    def request(self) -> GraphQLRequest:
        variables = dict(self.variables) if self.variables is not None else None
        return GraphQLRequest(self.query, self.operation_name, variables)


def _field(data: Mapping[str, Any], name: str) -> Any:
    if name in data:
        return data[name]
    folded = name.casefold()
    return next((v for k, v in data.items() if k.casefold() == folded), None)


def _string_field(data: Mapping[str, Any], name: str) -> str:
    value = _field(data, name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"graphql: field {name!r} must be a string")
    return value


def get_options(extra_config: Mapping[str, Any]) -> Options:
    """Extract the GraphQL options from a backend's extra config."""
    if not extra_config or NAMESPACE not in extra_config:
        raise NoConfigFoundError()
    data = json.loads(json.dumps(extra_config[NAMESPACE]))
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("graphql: the configuration must be an object")

    variables = _field(data, "variables")
    if variables is not None and not isinstance(variables, dict):
        raise ValueError("graphql: field 'variables' must be an object")

    method_name = _string_field(data, "method").upper()
    method = OperationMethod(method_name) if method_name in ("GET", "POST") else OperationMethod.POST

    type_name = _string_field(data, "type").lower()
    try:
        op_type: Union[OperationType, str] = OperationType(type_name)
    except ValueError:
        op_type = type_name

    opt = Options(
        query=_string_field(data, "query"),
        operation_name=_string_field(data, "operationName"),
        variables=variables,
        query_path=_string_field(data, "query_path"),
        type=op_type,
        method=method,
    )
    if opt.query_path:
        opt.query = Path(opt.query_path).read_text()
    return opt


class Extractor:
    """Builds GraphQL requests from route params or from a request body."""

    def __init__(self, options: Options) -> None:
        self.options = options
        self._replacements: List[Tuple[str, str]] = [
            (key, value[1:2].title() + value[2:-1])
            for key, value in (options.variables or {}).items()
            if isinstance(value, str) and len(value) >= 2 and value[0] == "{" and value[-1] == "}"
        ]
        self._static_body: Optional[bytes] = (
            None if self._replacements else options.request().to_json().encode()
        )

    def _from_params(self, params: Mapping[str, str]) -> GraphQLRequest:
        if not self._replacements:
            return self.options.request()
        variables = dict(self.options.variables or {})
        for name, param in self._replacements:
            variables[name] = params.get(param, "")
        return GraphQLRequest(self.options.query, self.options.operation_name, variables)

    def _from_body(self, reader) -> GraphQLRequest:
        decoded = json.loads(reader.read())
        if decoded is None:
            decoded = {}
        if not isinstance(decoded, dict):
            raise ValueError("graphql: the request body must be a JSON object")
        for key, value in (self.options.variables or {}).items():
            decoded.setdefault(key, value)
        return GraphQLRequest(self.options.query, self.options.operation_name, decoded)

    def query_from_body(self, reader) -> Dict[str, str]:
        """Query values with the configured variables overridden by the body."""
        return self._from_body(reader).to_query()

    def body_from_body(self, reader) -> bytes:
        """Request body with the configured variables overridden by the body."""
        return self._from_body(reader).to_json().encode()

    def query_from_params(self, params: Mapping[str, str]) -> Dict[str, str]:
        """Query values with placeholder variables filled from the params."""
        return self._from_params(params).to_query()

    def body_from_params(self, params: Mapping[str, str]) -> bytes:
        """Request body with placeholder variables filled from the params."""
        if self._static_body is not None:
            return self._static_body
        return self._from_params(params).to_json().encode()


def new(options: Options) -> Extractor:
    """Return an Extractor for the given options."""
    return Extractor(options)