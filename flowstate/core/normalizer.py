"""
Response normalizer.

Webhook responses arrive in several shapes: a bare object, a one-element
list, a `{"json": ...}` envelope, with variables nested under `variables` or
spread across top-level keys. Each shape is a rule that either matches and
yields a value or does not; rules are tried in a fixed order and the first
match wins.

Normalization never raises. An empty or unusable response is an empty
variable set.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

RESERVED_KEYS = frozenset({"next_step", "variables"})

UNTITLED = "Untitled"

# Dedicated nested field first, then general-purpose list fields.
TITLE_LIST_FIELDS = ("titles", "archive_titles", "items", "entries", "results")
TITLE_KEYS = ("title", "name", "label", "id")
ID_KEYS = ("id", "title")
SUBTITLE_KEYS = ("subtitle", "sub_title", "subTitle")
ENTRY_FIELDS = ("entry", "casting", "data", "details")


@dataclass(frozen=True)
class Matched:
    """A rule matched and produced a value."""

    value: Any


class _NoMatch:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_MATCH"


NO_MATCH = _NoMatch()

RuleResult = Union[Matched, _NoMatch]
Rule = Callable[[Any], RuleResult]


def first_match(rules: Sequence[Rule], subject: Any) -> RuleResult:
    """Apply rules in order and return the first Matched result."""
    for rule in rules:
        result = rule(subject)
        if isinstance(result, Matched):
            return result
    return NO_MATCH


# ---------------------------------------------------------------------------
# Envelope unwrapping
# ---------------------------------------------------------------------------


def unwrap_response(response: Any) -> Dict[str, Any]:
    """Strip list and `json` envelopes; anything but an object becomes {}."""
    resolved = response
    if isinstance(resolved, list):
        resolved = resolved[0] if resolved else None
    if isinstance(resolved, Mapping) and resolved.get("json") is not None:
        resolved = resolved["json"]
    return dict(resolved) if isinstance(resolved, Mapping) else {}


# ---------------------------------------------------------------------------
# Variable extraction
# ---------------------------------------------------------------------------


def _collect_top_level(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k not in RESERVED_KEYS}


def _variables_mapping(data: Mapping[str, Any]) -> RuleResult:
    variables = data.get("variables")
    if isinstance(variables, Mapping):
        return Matched(dict(variables))
    return NO_MATCH


def _variables_message(data: Mapping[str, Any]) -> RuleResult:
    variables = data.get("variables")
    if isinstance(variables, str):
        return Matched({"message": variables, **_collect_top_level(data)})
    return NO_MATCH


def _flat_keys(data: Mapping[str, Any]) -> RuleResult:
    return Matched(_collect_top_level(data))


VARIABLE_RULES: Sequence[Rule] = (_variables_mapping, _variables_message, _flat_keys)


def normalize(response: Any) -> Dict[str, Any]:
    """Map any response shape to a flat variable mapping."""
    data = unwrap_response(response)
    if not data:
        return {}
    result = first_match(VARIABLE_RULES, data)
    return result.value if isinstance(result, Matched) else {}


@dataclass
class NormalizedResponse:
    """Everything the driver reads from one webhook response."""

    variables: Dict[str, Any] = field(default_factory=dict)
    next_step: Optional[str] = None
    form: Optional[Dict[str, Any]] = None


def normalize_response(response: Any) -> NormalizedResponse:
    data = unwrap_response(response)
    next_step = data.get("next_step")
    form = data.get("form")
    return NormalizedResponse(
        variables=normalize(data),
        next_step=next_step if isinstance(next_step, str) and next_step else None,
        form=dict(form) if isinstance(form, Mapping) else None,
    )


# ---------------------------------------------------------------------------
# Archive lists
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ArchiveTitle:
    """One selectable archive entry."""

    title: str
    id: str
    subtitle: Optional[str] = None


def _nested_titles(data: Mapping[str, Any]) -> RuleResult:
    nested = data.get("Titles")
    if isinstance(nested, Mapping) and isinstance(nested.get("titles"), list):
        return Matched(nested["titles"])
    return NO_MATCH


def _list_field(name: str) -> Rule:
    def rule(data: Mapping[str, Any]) -> RuleResult:
        value = data.get(name)
        return Matched(value) if isinstance(value, list) else NO_MATCH

    rule.__name__ = f"_list_field_{name}"
    return rule


def _mapping_field(name: str) -> Rule:
    def rule(data: Mapping[str, Any]) -> RuleResult:
        value = data.get(name)
        return Matched(dict(value)) if isinstance(value, Mapping) and value else NO_MATCH

    rule.__name__ = f"_mapping_field_{name}"
    return rule


TITLE_LIST_RULES: Sequence[Rule] = (_nested_titles,) + tuple(
    _list_field(name) for name in TITLE_LIST_FIELDS
)
ENTRY_RULES: Sequence[Rule] = tuple(_mapping_field(name) for name in ENTRY_FIELDS)


def find_titles(payload: Any) -> List[Any]:
    """Locate the raw list of archive titles in a response."""
    data = unwrap_response(payload)
    result = first_match(TITLE_LIST_RULES, data)
    return list(result.value) if isinstance(result, Matched) else []


def _first_truthy(item: Mapping[str, Any], keys: Sequence[str]) -> Optional[Any]:
    for key in keys:
        value = item.get(key)
        if value:
            return value
    return None


def normalize_title(item: Any) -> ArchiveTitle:
    """Convert a raw list entry into an ArchiveTitle."""
    if isinstance(item, str):
        return ArchiveTitle(title=item, id=item)
    if isinstance(item, Mapping):
        title = _first_truthy(item, TITLE_KEYS) or UNTITLED
        item_id = _first_truthy(item, ID_KEYS) or title
        subtitle = _first_truthy(item, SUBTITLE_KEYS)
        return ArchiveTitle(
            title=str(title),
            id=str(item_id),
            subtitle=str(subtitle) if subtitle else None,
        )
    return ArchiveTitle(title=UNTITLED, id=str(item))


def extract_titles(payload: Any) -> List[ArchiveTitle]:
    return [normalize_title(item) for item in find_titles(payload)]


def extract_entry_data(payload: Any) -> Dict[str, Any]:
    """Pull a selected archive entry out of its response envelope."""
    data = unwrap_response(payload)
    result = first_match(ENTRY_RULES, data)
    return result.value if isinstance(result, Matched) else data
