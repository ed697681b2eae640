"""Decoders for the composite attribute encodings stored in the directory.

Three encodings show up in role, resource and association entries:

* localized text: ``en~Hello|de~Hallo``
* entitlement references: ``driver#status#<ref><src>..</src><id>..</id>
  <param>{"ID": ..}</param></ref>``
* dynamic parameter values: ``<parameter><value>..</value></parameter>``
  where the value is JSON escaped with ``&quot;``, ``&lt;`` and ``&gt;``

None of the functions here raise on malformed input. Whatever cannot be
decoded is left empty and the raw attribute stays available to the caller.
"""

import json
import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, Iterable, Optional, Sequence

from rolesync.schemas.schemas import EntitlementRef

logger = logging.getLogger(__name__)

PREFERRED_LANGUAGES = ("en", "de")

# Only these three entities are undone in dynamic parameter values
_PARAM_ENTITIES = (
    ("&quot;", '"'),
    ("&lt;", "<"),
    ("&gt;", ">"),
)


def _canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def parse_localized(value: Optional[str]) -> Dict[str, str]:
    """Split ``lang~text|lang~text`` into a language -> text mapping."""
    result: Dict[str, str] = {}
    if not value:
        return result
    for segment in value.split("|"):
        if "~" not in segment:
            continue
        lang, text = segment.split("~", 1)
        result[lang] = text
    return result


def localized_json(value: Optional[str]) -> str:
    """Localized text as the JSON object stored in the ``nrflocalized*`` columns."""
    return _canonical_json(parse_localized(value))


def pick_localized(
    mapping: Dict[str, str], preferred: Sequence[str] = PREFERRED_LANGUAGES
) -> str:
    """Preferred-language text: English, then German, then whatever exists."""
    for lang in preferred:
        if mapping.get(lang):
            return mapping[lang]
    for text in mapping.values():
        if text:
            return text
    return ""


def join_values(values: Iterable[str], separator: str = "|") -> str:
    """Join a multi-valued attribute in directory order."""
    return separator.join(v for v in values if v is not None)


def _first_element(text: str) -> ET.Element:
    """Parse the first complete element of ``text``, ignoring anything after it.

    Raises ``ET.ParseError`` when no element is closed before the input ends
    or a syntax error occurs inside it.
    """
    parser = ET.XMLPullParser(events=("start", "end"))
    parser.feed(text)
    depth = 0
    # syntax errors are queued behind the events that precede them
    for event, element in parser.read_events():
        if event == "start":
            depth += 1
            continue
        depth -= 1
        if depth == 0:
            return element
    raise ET.ParseError("no complete element")


def _param_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return _canonical_json(value)


def decode_entitlement_ref(value: Optional[str]) -> EntitlementRef:
    """Decode ``driver#status#xml`` into an :class:`EntitlementRef`.

    Missing parts stay empty. The XML fragment is expected to be a ``<ref>``
    element with ``src``, ``id`` and an optional ``param`` whose text is a JSON
    object with ``ID``, ``ID2`` and ``ID3``. A ``param`` that is not such an
    object is kept verbatim as ``param_id``.
    """
    ref = EntitlementRef()
    if not value:
        return ref

    parts = value.split("#", 2)
    ref.driver = parts[0]
    if len(parts) > 1:
        ref.status = parts[1]
    if len(parts) > 2:
        ref.xml = parts[2]

    if not ref.xml:
        return ref

    try:
        root = _first_element(ref.xml)
    except ET.ParseError as e:
        logger.warning("Unparseable entitlement XML %r: %s", ref.xml, e)
        return ref
    if root.tag != "ref":
        logger.warning("Unexpected entitlement XML root <%s>", root.tag)
        return ref

    ref.xml_src = root.findtext("src", default="")
    ref.xml_id = root.findtext("id", default="")

    param = root.findtext("param", default="")
    if not param:
        return ref
    try:
        parsed = json.loads(param)
    except ValueError:
        parsed = None
    if isinstance(parsed, dict):
        ref.param_id = _param_text(parsed.get("ID"))
        ref.param_id2 = _param_text(parsed.get("ID2"))
        ref.param_id3 = _param_text(parsed.get("ID3"))
    else:
        ref.param_id = param
    return ref


def unescape_param_entities(text: str) -> str:
    for entity, char in _PARAM_ENTITIES:
        text = text.replace(entity, char)
    return text


def decode_dynamic_parm_vals(value: Optional[str]) -> Optional[str]:
    """Extract the JSON carried by a ``<parameter><value>`` fragment.

    Returns the canonical JSON text, or None when the fragment is not valid
    XML, has no value, or the unescaped value is not a JSON object or array.
    """
    if not value:
        return None
    try:
        root = _first_element(value)
    except ET.ParseError as e:
        logger.warning("Unparseable dynamic parameter XML: %s", e)
        return None
    if root.tag != "parameter":
        logger.warning("Unexpected dynamic parameter XML root <%s>", root.tag)
        return None

    raw = root.findtext("value")
    if not raw:
        return None
    try:
        parsed = json.loads(unescape_param_entities(raw))
    except ValueError:
        logger.warning("Dynamic parameter value is not JSON: %r", raw)
        return None
    if not isinstance(parsed, (dict, list)):
        logger.warning("Dynamic parameter value is not an object or array: %r", raw)
        return None
    return _canonical_json(parsed)
