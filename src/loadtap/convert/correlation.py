"""
LoadTap Response Correlation

Detects request body values that were copied from the previous JSON response
(auth tokens, generated IDs, ...) and rewrites them as symbolic references,
so the generated script reads them from the live response at run time instead
of replaying a frozen snapshot.

Example:
    previous response:  {"id": 5, "token": "abc"}
    request body:       {"id": 5, "name": "x"}
    correlated body:    {"id": "${json.id}", "name": "x"}
"""

import json
import logging
import re
from enum import Enum
from typing import Any, Sequence, Tuple, Union

from jsonpath_ng.jsonpath import Child, Fields, Index, Root

from ..errors import CorrelationConsistencyError

logger = logging.getLogger("loadtap.correlation")

PathSegment = Union[str, int]

_IDENTIFIER_RE = re.compile(r'^[A-Za-z_$][A-Za-z0-9_$]*$')


class NodeKind(Enum):
    """Kinds of node in a parsed JSON tree."""

    OBJECT = "object"
    ARRAY = "array"
    SCALAR = "scalar"
    NULL = "null"
    UNKNOWN = "unknown"


def node_kind(value: Any) -> NodeKind:
    """Classify a JSON tree node."""
    if value is None:
        return NodeKind.NULL
    if isinstance(value, dict):
        return NodeKind.OBJECT
    if isinstance(value, list):
        return NodeKind.ARRAY
    if isinstance(value, (str, bool, int, float)):
        return NodeKind.SCALAR
    return NodeKind.UNKNOWN


def json_path_expression(path: Sequence[PathSegment]) -> str:
    """
    Render a path as a k6 template expression over the `json` variable.

    Keys become ".key" (or '["key"]' when not a valid identifier), indices
    become "[n]".

    Example:
        json_path_expression(["items", 0, "id"])  # "${json.items[0].id}"
    """
    parts = ["${json"]
    for segment in path:
        if isinstance(segment, int):
            parts.append(f"[{segment}]")
        elif _IDENTIFIER_RE.match(segment):
            parts.append(f".{segment}")
        else:
            parts.append(f"[{json.dumps(segment)}]")
    parts.append("}")
    return "".join(parts)


class Reference(str):
    """
    A correlated leaf: the template expression for a path in the previous response.

    Behaves as the expression string (so trees compare equal to plain
    templates) and remembers the path and the literal it replaced.
    """

    path: Tuple[PathSegment, ...]
    original: Any

    def __new__(cls, path: Sequence[PathSegment], original: Any = None):
        obj = super().__new__(cls, json_path_expression(path))
        obj.path = tuple(path)
        obj.original = original
        return obj

    def __repr__(self) -> str:
        return f"Reference({str(self)!r})"


def scalars_equal(left: Any, right: Any) -> bool:
    """Exact scalar equality; booleans never equal numbers and strings never equal numbers."""
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    if isinstance(left, str) != isinstance(right, str):
        return False
    return left == right


class _FieldStep(Fields):
    """One object key taken literally; a key named "*" is not a wildcard."""

    def reified_fields(self, datum):
        return self.fields


def resolve_reference(reference: Reference, response: Any) -> Any:
    """
    Evaluate a reference against a response tree with JSONPath.

    Raises:
        LookupError: If the path does not exist in the response
    """
    expression = Root()
    for segment in reference.path:
        step = Index(segment) if isinstance(segment, int) else _FieldStep(segment)
        expression = Child(expression, step)

    matches = expression.find(response)
    if not matches:
        raise LookupError(f"{reference} not found in response")
    return matches[0].value


class Correlator:
    """
    Walks a request tree and the previous response tree in lock-step.

    Args:
        strict: Raise CorrelationConsistencyError on shape mismatches instead
            of leaving the mismatched branch untouched
    """

    def __init__(self, strict: bool = False):
        self.strict = strict
        self.rewrites = 0

    def correlate(self, request: Any, response: Any) -> Any:
        """
        Return a copy of request with values duplicated from response replaced by references.

        The result has the same shape as request; only scalar leaves change.
        Neither input is modified.
        """
        return self._walk(request, response, ())

    def verify(self, request: Any, response: Any) -> Any:
        """
        Check that every reference in a correlated tree resolves to the literal it replaced.

        References that do not are put back to their literal value, unless
        strict is set.

        Returns:
            The tree with only verified references left

        Raises:
            CorrelationConsistencyError: In strict mode, if a reference points elsewhere
        """
        kind = node_kind(request)
        if isinstance(request, Reference):
            return self._verify_reference(request, response)
        if kind is NodeKind.OBJECT:
            return {k: self.verify(v, response) for k, v in request.items()}
        if kind is NodeKind.ARRAY:
            return [self.verify(v, response) for v in request]
        return request

    def _verify_reference(self, reference: Reference, response: Any) -> Any:
        try:
            value = resolve_reference(reference, response)
        except LookupError as e:
            problem = str(e)
        else:
            if scalars_equal(value, reference.original):
                return reference
            problem = f"{reference} resolves to {value!r}, expected {reference.original!r}"

        if self.strict:
            raise CorrelationConsistencyError(problem, path=str(reference))
        logger.debug("Dropping reference: %s", problem)
        self.rewrites -= 1
        return reference.original

    def _walk(self, request: Any, response: Any, path: Tuple[PathSegment, ...]) -> Any:
        request_kind = node_kind(request)
        response_kind = node_kind(response)

        if request_kind is NodeKind.OBJECT:
            if response_kind is NodeKind.OBJECT:
                return self._walk_object(request, response, path)
            self._mismatch(request_kind, response_kind, path)
            return self._copy(request)

        if request_kind is NodeKind.ARRAY:
            if response_kind is NodeKind.ARRAY:
                return self._walk_array(request, response, path)
            self._mismatch(request_kind, response_kind, path)
            return self._copy(request)

        if request_kind is NodeKind.SCALAR and response_kind is NodeKind.SCALAR:
            if path and scalars_equal(request, response):
                self.rewrites += 1
                reference = Reference(path, original=request)
                logger.debug("Correlated %r -> %s", request, reference)
                return reference

        # Null and unknown request nodes are kept as they are
        return request

    def _walk_object(self, request: dict, response: dict, path) -> dict:
        result = {}
        for key, value in request.items():
            response_value = response.get(key)
            if response_value is None:
                # Nothing to correlate against down this branch
                result[key] = self._copy(value)
            else:
                result[key] = self._walk(value, response_value, path + (key,))
        return result

    def _walk_array(self, request: list, response: list, path) -> list:
        result = []
        for index, value in enumerate(request):
            if index < len(response):
                result.append(self._walk(value, response[index], path + (index,)))
            else:
                result.append(self._copy(value))
        return result

    def _mismatch(self, request_kind: NodeKind, response_kind: NodeKind, path) -> None:
        location = json_path_expression(path)
        if self.strict:
            raise CorrelationConsistencyError(
                f"Request has {request_kind.value} at {location} but response has "
                f"{response_kind.value}",
                path=location,
            )
        logger.debug("Skipping correlation at %s: request %s vs response %s",
                     location, request_kind.value, response_kind.value)

    def _copy(self, value: Any) -> Any:
        kind = node_kind(value)
        if kind is NodeKind.OBJECT:
            return {k: self._copy(v) for k, v in value.items()}
        if kind is NodeKind.ARRAY:
            return [self._copy(v) for v in value]
        return value


def correlate(request: Any, response: Any, strict: bool = False) -> Any:
    """Correlate a request tree against a response tree. See Correlator."""
    return Correlator(strict=strict).correlate(request, response)
