"""
Variable composer.

Builds the outbound `variables` payload from several sources merged under a
fixed precedence. For a user action, lowest to highest priority:

1. session variables
2. step configuration variables
3. page context (URL query parameters)
4. variables declared on the form element
5. variables declared on the submitter button

Declared sources may be mappings or JSON strings (as read from markup). A
string that does not decode to an object fails the whole composition.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Union
from urllib.parse import parse_qsl, urlsplit

from flowstate.core.errors import InvalidVariableJson
from flowstate.core.precedence import merge_layers

RawVariables = Union[None, str, Mapping[str, Any]]

# casting_id is exposed under lookup_id as well, unless lookup_id is set.
QUERY_ALIASES = {"casting_id": "lookup_id"}


@dataclass(frozen=True)
class VariableSource:
    """A named, possibly unparsed, variable declaration."""

    name: str
    value: RawVariables = None

    def resolve(self) -> Dict[str, Any]:
        return parse_variables(self.value, self.name)


def parse_variables(value: RawVariables, source: str) -> Dict[str, Any]:
    """
    Turn a declared variable source into a mapping.

    Args:
        value: None, a mapping, or a JSON object string
        source: Human-readable name used in error messages

    Raises:
        InvalidVariableJson: If the value is not a mapping or a JSON object
    """
    if value is None or value == "":
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError as e:
            raise InvalidVariableJson(source, str(e)) from e
        if not isinstance(parsed, dict):
            raise InvalidVariableJson(source, f"expected an object, got {type(parsed).__name__}")
        return parsed
    raise InvalidVariableJson(source, f"unsupported type {type(value).__name__}")


def compose(sources: Iterable[Union[VariableSource, RawVariables]]) -> Dict[str, Any]:
    """Merge sources left to right; later sources win on conflicting keys."""
    layers = []
    for index, source in enumerate(sources):
        if isinstance(source, VariableSource):
            layers.append(source.resolve())
        else:
            layers.append(parse_variables(source, f"variable source #{index + 1}"))
    return merge_layers(layers)


def parse_query(query: Union[None, str, Mapping[str, Any]]) -> Dict[str, str]:
    """Accept a query string, a full URL, or a mapping; first value wins."""
    if not query:
        return {}
    if isinstance(query, Mapping):
        return {str(k): str(v) for k, v in query.items()}
    if "?" in query or "://" in query:
        query = urlsplit(query).query
    params: Dict[str, str] = {}
    for key, value in parse_qsl(query.lstrip("?"), keep_blank_values=True):
        params.setdefault(key, value)
    return params


def page_context_variables(
    query: Union[None, str, Mapping[str, Any]],
    existing: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Variables derived from the page URL.

    Every query parameter becomes a variable. Aliased parameters are also
    copied to their alias key when neither the query nor `existing` (the
    lower-precedence variables composed so far) already carries it.
    """
    params = parse_query(query)
    variables: Dict[str, Any] = dict(params)
    existing = existing or {}
    for name, alias in QUERY_ALIASES.items():
        if name in params and alias not in params and alias not in existing:
            variables[alias] = params[name]
    return variables


def build_request_variables(
    state_variables: Optional[Mapping[str, Any]] = None,
    config_variables: RawVariables = None,
    query: Union[None, str, Mapping[str, Any]] = None,
    form_variables: RawVariables = None,
    submitter_variables: RawVariables = None,
    *,
    config_source: str = "step request_variables",
    form_source: str = "form data-request-variables",
    submitter_source: str = "button data-request-variables",
) -> Dict[str, Any]:
    """Compose the outbound variables in canonical action order."""
    lower = compose([
        VariableSource("session variables", state_variables),
        VariableSource(config_source, config_variables),
    ])
    return compose([
        lower,
        page_context_variables(query, existing=lower),
        VariableSource(form_source, form_variables),
        VariableSource(submitter_source, submitter_variables),
    ])
