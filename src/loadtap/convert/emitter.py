"""
LoadTap k6 Script Emitter

Renders grouped entries as a k6 JavaScript load-test script.

Two emission modes:
- Batched (default): concurrent entries are replayed with http.batch() and
  separated by the sleeps measured in the capture
- Sequential (no_batch): one request statement per entry, optionally with
  response correlation and short-circuiting checks

Rendering is pure: every _render_* method returns lines and the only mutable
state is the output buffer in render().
"""

import io
import json
import logging
from typing import Any, Dict, List, NamedTuple, Optional, Sequence
from urllib.parse import unquote_plus

from ..common import filter_replay_headers, is_json_mime_type, parse_json_body
from ..errors import SequencingError
from ..har import Capture, Entry, Request, Response
from .batching import split_into_batches, wait_between
from .correlation import Correlator, NodeKind, Reference, node_kind
from .grouping import PageGroup
from .options import ConversionOptions

logger = logging.getLogger("loadtap.emitter")

INDENT = "\t"

# HTTP methods with a dedicated k6 http function
K6_VERBS = {
    'GET': 'get',
    'POST': 'post',
    'PUT': 'put',
    'PATCH': 'patch',
    'DELETE': 'del',
    'HEAD': 'head',
    'OPTIONS': 'options',
}

BODYLESS_METHODS = {'GET', 'HEAD'}


class SequentialState(NamedTuple):
    """
    What one sequential request hands to the next.

    previous_response is the last JSON response tree (None when the last
    response was absent or not JSON); redirect_url is a recorded Location the
    next request must follow.
    """

    previous_response: Any = None
    redirect_url: Optional[str] = None


def _indent_block(text: str, prefix: str) -> str:
    """Prefix every line but the first."""
    return text.replace("\n", "\n" + prefix)


def _js_string(value: str) -> str:
    return json.dumps(value)


def _check_expression(target: str, status: int) -> str:
    return f'check({target}, {{"status is {status}": (r) => r.status === {status} }})'


def _template_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${")


def _template_node(node: Any, depth: int) -> str:
    """Serialise one node of a template-literal body."""
    if isinstance(node, Reference):
        return f'"{node}"'

    kind = node_kind(node)
    inner = INDENT * (depth + 1)
    if kind is NodeKind.OBJECT:
        if not node:
            return "{}"
        members = [
            f"{inner}{_template_escape(json.dumps(key))}: {_template_node(node[key], depth + 1)}"
            for key in sorted(node)
        ]
        return "{\n" + ",\n".join(members) + "\n" + INDENT * depth + "}"
    if kind is NodeKind.ARRAY:
        if not node:
            return "[]"
        items = [f"{inner}{_template_node(item, depth + 1)}" for item in node]
        return "[\n" + ",\n".join(items) + "\n" + INDENT * depth + "]"
    return _template_escape(json.dumps(node))


class ScriptEmitter:
    """
    Turns page groups into k6 script text.

    Example:
        emitter = ScriptEmitter(ConversionOptions(enable_checks=True))
        script = emitter.render(capture, group_entries(capture))
    """

    def __init__(self, options: ConversionOptions):
        """
        Initialize emitter.

        Args:
            options: Validated conversion options
        """
        self.options = options
        self.correlator = Correlator(strict=options.strict_correlation)

    def render(self, capture: Capture, groups: Sequence[PageGroup]) -> str:
        """
        Render the complete script.

        Raises:
            DecodeError: On malformed JSON bodies
            SequencingError: When a recorded redirect is not followed
            CorrelationConsistencyError: On shape mismatches in strict mode
        """
        out = io.StringIO()

        for line in self._render_preamble(capture):
            out.write(line + "\n")

        out.write("export default function() {\n\n")
        for index, group in enumerate(groups):
            next_group = groups[index + 1] if index + 1 < len(groups) else None
            for line in self._render_group(group, next_group):
                out.write(line + "\n")
        out.write("\n}\n")

        return out.getvalue()

    # Document structure

    def _render_preamble(self, capture: Capture) -> List[str]:
        if self.options.enable_checks:
            lines = ["import { group, check, sleep } from 'k6';"]
        else:
            lines = ["import { group, sleep } from 'k6';"]
        lines += ["import http from 'k6/http';", ""]

        lines.append(f"// Version: {capture.version}")
        lines.append(f"// Creator: {capture.creator.name}")
        if capture.browser is not None:
            lines.append(f"// Browser: {capture.browser.name}")
        if capture.comment:
            lines.extend(f"// {line}" for line in capture.comment.splitlines())

        # Redirects were recorded as separate entries; following them would replay them twice
        lines += ["", "export let options = { maxRedirects: 0 };", ""]
        return lines

    def _render_group(self, group: PageGroup, next_group: Optional[PageGroup]) -> List[str]:
        lines = [f"{INDENT}group({_js_string(group.title)}, function() {{"]
        if self.options.no_batch:
            lines += self._render_sequential_group(group)
        else:
            lines += self._render_batched_group(group, next_group)
        lines.append(f"{INDENT}}});")
        return lines

    # Sequential mode

    def _render_sequential_group(self, group: PageGroup) -> List[str]:
        prefix = INDENT * 2
        lines = [f"{prefix}let res, redirectUrl, json;"]

        # Correlation state never crosses page groups
        state = SequentialState()
        for index, entry in enumerate(group.entries):
            entry_lines, state = self._render_sequential_entry(index, entry, state)
            lines += entry_lines
        return lines

    def _render_sequential_entry(self, index: int, entry: Entry,
                                 state: SequentialState):
        """Render one request statement; return its lines and the state for the next entry."""
        prefix = INDENT * 2
        request = entry.request
        lines = [f"{prefix}// Request #{index}"]

        url_argument = _js_string(request.url)
        if self.options.correlate and state.redirect_url is not None:
            if state.redirect_url != request.url:
                raise SequencingError(state.redirect_url, request.url)
            url_argument = "redirectUrl"
            state = state._replace(redirect_url=None)

        arguments = [url_argument]
        body = None
        if request.method not in BODYLESS_METHODS:
            body = self._body_argument(request, state.previous_response)
        params = self._params_object(request)

        verb = K6_VERBS.get(request.method)
        if verb is None:
            arguments.insert(0, _js_string(request.method))
            verb = "request"
        # k6 takes the body positionally for every verb but get and head
        if request.method not in BODYLESS_METHODS:
            arguments.append(body if body is not None else "null")
        if params is not None:
            arguments.append(params)

        if len(arguments) == 1:
            lines.append(f"{prefix}res = http.{verb}({arguments[0]});")
        else:
            inner = prefix + INDENT
            lines.append(f"{prefix}res = http.{verb}(")
            lines.append(",\n".join(inner + _indent_block(arg, inner) for arg in arguments))
            lines.append(f"{prefix});")

        if entry.response is None:
            # Failed or unrecorded: nothing to assert or correlate against
            return lines, state._replace(previous_response=None)

        lines += self._render_sequential_check(entry.response)
        return self._render_response_capture(lines, entry.response, state)

    def _render_sequential_check(self, response: Response) -> List[str]:
        if not self.options.enable_checks or response.status <= 0:
            return []
        check = _check_expression("res", response.status)
        if self.options.return_on_failed_check:
            return [f"{INDENT * 2}if (!{check}) {{ return }};"]
        return [f"{INDENT * 2}{check};"]

    def _render_response_capture(self, lines: List[str], response: Response,
                                 state: SequentialState):
        if not self.options.correlate:
            return lines, state

        prefix = INDENT * 2
        location = response.header('location')
        if location:
            lines.append(f"{prefix}redirectUrl = res.headers.Location;")
            state = state._replace(redirect_url=location)

        text = response.content.text
        if is_json_mime_type(response.content.mime_type) and text.strip():
            tree = parse_json_body(text, "response body")
            lines.append(f"{prefix}json = JSON.parse(res.body);")
            return lines, state._replace(previous_response=tree)

        return lines, state._replace(previous_response=None)

    # Batched mode

    def _render_batched_group(self, group: PageGroup, next_group: Optional[PageGroup]) -> List[str]:
        prefix = INDENT * 2
        lines = [f"{prefix}let req, res;"]

        batches = split_into_batches(group.entries, self.options.batch_window)
        logger.debug("Page %r: %d entries in %d batches",
                     group.page.id, len(group.entries), len(batches))

        for index, batch in enumerate(batches):
            objects = [self._request_object(entry.request) for entry in batch]
            lines.append(f"{prefix}req = [{','.join(objects)}];")
            lines.append(f"{prefix}res = http.batch(req);")

            if self.options.enable_checks:
                for position, entry in enumerate(batch):
                    if entry.response is not None and entry.response.status > 0:
                        check = _check_expression(f"res[{position}]", entry.response.status)
                        lines.append(f"{prefix}{check};")

            if index + 1 < len(batches):
                pause = wait_between(batch[-1].started, batches[index + 1][0].started)
                lines.append(f"{prefix}sleep({pause:.2f});")

        if next_group is None:
            lines.append(f"{prefix}// Random sleep between 2s and 4s")
            lines.append(f"{prefix}sleep(Math.floor(Math.random()*3+2));")
        else:
            pause = wait_between(group.entries[-1].started, next_group.page.started)
            lines.append(f"{prefix}sleep({pause:.2f});")
        return lines

    def _request_object(self, request: Request) -> str:
        """Render one http.batch() request object."""
        obj: Dict[str, Any] = {'method': request.method, 'url': request.url}

        if request.post_data is not None and request.method not in BODYLESS_METHODS:
            form = self._form_fields(request)
            if form:
                obj['body'] = form
            elif request.post_data.text:
                obj['body'] = request.post_data.text

        params = self._params(request)
        if params:
            obj['params'] = params

        return _indent_block(json.dumps(obj, indent=INDENT), INDENT * 2)

    # Request parts shared by both modes

    def _params(self, request: Request) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if request.cookies:
            params['cookies'] = {c.name: c.value for c in request.cookies}
        headers = filter_replay_headers(request.headers)
        if headers:
            params['headers'] = dict(headers)
        return params

    def _params_object(self, request: Request) -> Optional[str]:
        params = self._params(request)
        if not params:
            return None
        return json.dumps(params, indent=INDENT)

    def _form_fields(self, request: Request) -> Dict[str, str]:
        post_data = request.post_data
        if post_data is None or not post_data.is_form_urlencoded or not post_data.params:
            return {}
        return {unquote_plus(p.name): unquote_plus(p.value) for p in post_data.params}

    def _body_argument(self, request: Request, previous_response: Any) -> Optional[str]:
        """Render the body argument of a sequential request, or None when there is none."""
        post_data = request.post_data
        if post_data is None:
            return None

        form = self._form_fields(request)
        if form:
            return json.dumps(form, indent=INDENT)

        if self.options.correlate and 'json' in post_data.mime_type.lower() and post_data.text.strip():
            tree = parse_json_body(post_data.text, f"request body of {request.url}")
            if previous_response is not None:
                tree = self.correlator.correlate(tree, previous_response)
                tree = self.correlator.verify(tree, previous_response)
            return self._template_literal(tree)

        if not post_data.text:
            return None
        return _js_string(post_data.text)

    def _template_literal(self, tree: Any) -> str:
        """
        Render a (possibly correlated) JSON tree as a JavaScript template literal.

        Layout matches json.dumps(indent=INDENT, sort_keys=True). References
        become ${json...} interpolations; every other `$`, backtick and
        backslash is escaped.
        """
        return f"`{_template_node(tree, 0)}`"
